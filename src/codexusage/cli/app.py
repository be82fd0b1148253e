"""Main CLI application for codexusage."""

from __future__ import annotations

import logging
from enum import IntEnum

import typer
from rich.console import Console
from rich.logging import RichHandler

# Create the main app
app = typer.Typer(
    name="codexusage",
    help="Show how much Codex quota is left",
    add_completion=False,
    no_args_is_help=False,
    invoke_without_command=True,
)


class ExitCode(IntEnum):
    """Exit codes for codexusage."""

    SUCCESS = 0
    GENERAL_ERROR = 1  # No strategy produced usage data


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; debug detail only with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", "-j", help="Enable JSON output mode"),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Bypass cache and fetch fresh data"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every fetch attempt to stderr"
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """codexusage - Show how much Codex quota is left."""
    if version:
        from codexusage import __version__

        typer.echo(f"codexusage {__version__}")
        raise typer.Exit()

    configure_logging(verbose)

    # Store options in context
    ctx.meta["json"] = json
    ctx.meta["refresh"] = refresh
    ctx.meta["verbose"] = verbose

    # If no command provided, run default usage command
    if ctx.invoked_subcommand is None:
        from codexusage.cli.commands.usage import run_usage

        run_usage(json_mode=json, refresh=refresh)


def run_app() -> None:
    """Run the CLI app."""
    app()


# Import command modules - they register themselves via @app.command() decorators
# These imports must come after app is defined
from codexusage.cli.commands import usage  # noqa: E402,F401 (registers usage command)
from codexusage.cli.commands import cache as cache_cmd  # noqa: E402

app.add_typer(cache_cmd.cache_app, name="cache")
