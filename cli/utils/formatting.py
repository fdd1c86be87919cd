"""Rich formatting utilities for CLI output."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

# Shared console instance
console = Console()


class OutputFormat(str, Enum):
    """Output format options for CLI commands."""

    TABLE = "table"
    JSON = "json"


# Type annotation for the --format option
FormatOption = typer.Option(
    OutputFormat.TABLE,
    "--format",
    "-f",
    help="Output format: table (default) or json",
    case_sensitive=False,
)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def print_json(data: Any):
    """Print data as indented JSON, unwrapped so it stays machine-readable."""
    console.print(
        json.dumps(data, default=_json_default, indent=2),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def create_table(title: str, columns: list[tuple]) -> Table:
    """Create a Rich table from ``(name, style, no_wrap)`` column tuples; style and no_wrap are optional."""
    table = Table(title=title)
    for name, *options in columns:
        style = options[0] if options else None
        no_wrap = options[1] if len(options) > 1 else False
        table.add_column(name, style=style, no_wrap=no_wrap)
    return table


def _status(icon: str, message: str, style: str):
    console.print(f"{icon} {message}", style=style, markup=False)


def print_error(message: str):
    _status("❌", message, "bold red")


def print_success(message: str):
    _status("✅", message, "bold green")


def print_warning(message: str):
    _status("⚠️ ", message, "bold yellow")


def print_info(message: str):
    _status("ℹ️ ", message, "bold blue")
