"""Tests for the ragskin CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from cli.cli import app
from cli.commands.corpus import parse_tags


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def notes(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("Retries back off exponentially after each failure.")
    return path


class TestAsk:
    def test_ask_prints_answer_and_sources(self, runner, notes):
        result = runner.invoke(app, ["ask", str(notes), "--query", "How do retries work?"])

        assert result.exit_code == 0
        assert "Uploaded 1 file(s)" in result.stdout
        assert "notes.md" in result.stdout

    def test_ask_json_output(self, runner, notes):
        result = runner.invoke(
            app,
            ["ask", str(notes), "-q", "retries?", "-q", "failure?", "--format", "json"],
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [item["query"] for item in data] == ["retries?", "failure?"]
        assert data[0]["citations"][0]["title"] == "notes.md"

    def test_ask_rejects_unsupported_file(self, runner, tmp_path):
        binary = tmp_path / "tool.exe"
        binary.write_bytes(b"MZ")

        result = runner.invoke(app, ["ask", str(binary), "-q", "what?"])

        assert result.exit_code == 1
        assert "Invalid file type" in result.stdout

    def test_ask_invalid_prompt_index(self, runner, notes):
        result = runner.invoke(app, ["ask", str(notes), "-q", "what?", "--prompt", "9"])
        assert result.exit_code == 1

    def test_ask_bad_tag(self, runner, notes):
        result = runner.invoke(app, ["ask", str(notes), "-q", "what?", "--tag", "novalue"])
        assert result.exit_code != 0


class TestClassify:
    def test_classify_status(self, runner):
        result = runner.invoke(app, ["classify", "--status", "429", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "kind": "rate_limited",
            "user_message": "Too many requests. Please wait a moment and try again.",
        }

    def test_classify_message(self, runner):
        result = runner.invoke(app, ["classify", "Connection timed out"])

        assert result.exit_code == 0
        assert "network_error" in result.stdout

    def test_classify_requires_input(self, runner):
        result = runner.invoke(app, ["classify"])
        assert result.exit_code == 1


class TestTiers:
    def test_tiers_table(self, runner):
        result = runner.invoke(app, ["tiers"])

        assert result.exit_code == 0
        assert "tier3" in result.stdout

    def test_tiers_recommendation_json(self, runner):
        result = runner.invoke(app, ["tiers", "--size", str(5 * 1024**3), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["recommended"] == "tier1"
        assert len(data["tiers"]) == 4


def test_parse_tags():
    assert parse_tags(["project=alpha", "note=a=b"]) == {"project": "alpha", "note": "a=b"}
    assert parse_tags(None) == {}
