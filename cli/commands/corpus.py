"""Corpus commands - one-shot grounded search and diagnostics."""

from pathlib import Path

import typer
from rich.panel import Panel

from cli.utils.django_context import with_django
from cli.utils.formatting import (
    FormatOption,
    OutputFormat,
    console,
    create_table,
    print_error,
    print_info,
    print_json,
    print_success,
    print_warning,
)
from corpus.intake import FileValidationError
from corpus.orchestrator import CorpusOrchestrator
from corpus.sessions import CorpusSession
from corpus.storage import StorageTier, format_bytes
from file_search import FileSearchRegistry, classify
from file_search.exceptions import FileSearchError


def parse_tags(tags: list[str] | None) -> dict[str, str]:
    """Parse ``key=value`` pairs into a metadata mapping."""
    metadata = {}
    for tag in tags or []:
        key, sep, value = tag.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Tag must look like key=value, got '{tag}'")
        metadata[key.strip()] = value
    return metadata


def _print_result(result):
    console.print(Panel(result.response, title=result.query, subtitle=result.formatted_timestamp))
    if not result.citations:
        return

    table = create_table("Sources", [("Title", "cyan"), ("Location", "dim"), ("URI", "dim")])
    for citation in result.citations:
        table.add_row(citation.title, citation.offset_info, citation.uri)
    console.print(table)


def _result_json(result) -> dict:
    return {
        "query": result.query,
        "response": result.response,
        "citations": [
            {"title": c.title, "uri": c.uri, "start_index": c.start_index, "end_index": c.end_index}
            for c in result.citations
        ],
        "timestamp": result.timestamp,
    }


@with_django
def ask_command(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Files to upload"),
    query: list[str] = typer.Option(..., "--query", "-q", help="Question to ask (repeatable)"),
    tag: list[str] = typer.Option(None, "--tag", "-t", help="Metadata tag key=value (repeatable)"),
    prompt: int = typer.Option(0, "--prompt", "-p", help="0 = base prompt, N = architecture prompt N"),
    backend: str = typer.Option(None, "--backend", "-b", help="File search backend (default: settings)"),
    format: OutputFormat = FormatOption,
):
    """
    Upload files to a temporary store, ask questions, then delete the store.
    """
    metadata = parse_tags(tag)
    session = CorpusSession("cli", CorpusOrchestrator(FileSearchRegistry.create(backend)))

    try:
        session.prompts.select(prompt)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    with session.orchestrator as orchestrator:
        if not orchestrator.is_active:
            print_error("File Search store could not be created. Check GEMINI_API_KEY and the logs.")
            raise typer.Exit(1)

        try:
            uploaded = session.upload_files(
                [(path.name, path.read_bytes()) for path in files], metadata or None
            )
        except FileValidationError as e:
            print_error(str(e))
            raise typer.Exit(1)
        except FileSearchError as e:
            print_error(e.user_message)
            raise typer.Exit(1)

        if format == OutputFormat.TABLE:
            print_success(f"Uploaded {len(uploaded)} file(s)")
            print_info(orchestrator.status_line())

        results = []
        for question in query:
            try:
                result = session.search(question, metadata or None)
            except FileSearchError as e:
                print_error(f"{question}: {e.user_message}")
                raise typer.Exit(1)
            results.append(result)
            if format == OutputFormat.TABLE:
                _print_result(result)

    if format == OutputFormat.JSON:
        print_json([_result_json(result) for result in results])


def classify_command(
    message: str = typer.Argument("", help="Error message text"),
    status: int = typer.Option(None, "--status", "-s", help="HTTP status code"),
    format: OutputFormat = FormatOption,
):
    """
    Show how a failure is classified and what the user would be told.
    """
    if status is None and not message:
        print_warning("Nothing to classify; pass a message or --status")
        raise typer.Exit(1)

    classification = classify(status, message)
    if format == OutputFormat.JSON:
        print_json({"kind": classification.kind.value, "user_message": classification.user_message})
        return

    console.print(f"[bold]Kind:[/bold] {classification.kind.value}")
    console.print(f"[bold]Message:[/bold] {classification.user_message}")


def tiers_command(
    size: int = typer.Option(None, "--size", help="Total bytes to store; shows the recommended tier"),
    format: OutputFormat = FormatOption,
):
    """
    List storage tiers, optionally with a recommendation for a size.
    """
    recommended = StorageTier.recommended(size) if size is not None else None

    if format == OutputFormat.JSON:
        print_json(
            {
                "tiers": [
                    {"id": tier.identifier, "name": tier.display_name, "max_bytes": tier.max_bytes}
                    for tier in StorageTier
                ],
                "recommended": recommended.identifier if recommended else None,
            }
        )
        return

    table = create_table("Storage Tiers", [("ID", "cyan", True), ("Name", "green"), ("Capacity", "magenta")])
    for tier in StorageTier:
        marker = " ⭐" if tier is recommended else ""
        table.add_row(tier.identifier, f"{tier.display_name}{marker}", format_bytes(tier.max_bytes))
    console.print(table)

    if recommended:
        print_info(f"Recommended for {format_bytes(size)}: {recommended.display_name}")
