"""Ragskin CLI - Main entry point."""

import typer

from cli.commands.corpus import ask_command, classify_command, tiers_command

# Create main Typer app
app = typer.Typer(
    name="ragskin",
    help="Ragskin CLI - Grounded search over a temporary File Search store",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

# Register standalone commands
app.command(name="ask")(ask_command)
app.command(name="classify")(classify_command)
app.command(name="tiers")(tiers_command)


@app.callback()
def main_callback():
    """Ragskin CLI for uploading documents and asking grounded questions."""
    pass


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
