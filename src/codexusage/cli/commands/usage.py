"""Usage display command for codexusage."""

from __future__ import annotations

import asyncio

import msgspec
import typer
from rich.console import Console
from rich.markup import escape

from codexusage.cli.app import ExitCode
from codexusage.cli.app import app
from codexusage.core.http import cleanup
from codexusage.core.orchestrator import UsageFetcher
from codexusage.models import Source
from codexusage.models import UsageSnapshot

WINDOW_LABELS = (
    ("5h limit", "five_hour_limit"),
    ("Weekly limit", "weekly_limit"),
)


@app.command("usage")
def usage_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False,
        "--refresh",
        "-r",
        help="Bypass cache and fetch fresh data",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show current Codex usage."""
    run_usage(
        json_mode=json_output or ctx.meta.get("json", False),
        refresh=refresh or ctx.meta.get("refresh", False),
    )


def run_usage(json_mode: bool = False, refresh: bool = False) -> None:
    """Fetch one snapshot, print it, and exit 1 if it is the sentinel."""
    snapshot = asyncio.run(fetch_usage(refresh))

    if json_mode:
        output_json(snapshot)
    else:
        display_snapshot(Console(soft_wrap=True), snapshot)

    if snapshot.source is Source.DEFAULT:
        raise typer.Exit(ExitCode.GENERAL_ERROR)


async def fetch_usage(refresh: bool = False) -> UsageSnapshot:
    """Run the fetcher and release the shared HTTP client afterwards."""
    try:
        return await UsageFetcher().get_usage(use_cache=not refresh)
    finally:
        await cleanup()


def output_json(snapshot: UsageSnapshot) -> None:
    typer.echo(msgspec.json.format(msgspec.json.encode(snapshot), indent=2).decode())


def display_snapshot(console: Console, snapshot: UsageSnapshot) -> None:
    """Print a snapshot as plain lines, colored by its bucket."""
    color = snapshot.color.value
    console.print(
        f"[{color}]Codex: {escape(snapshot.display)}[/{color}]"
        f" [dim]({snapshot.source.value})[/dim]",
        highlight=False,
    )
    for label, field in WINDOW_LABELS:
        window = getattr(snapshot, field)
        if window.display:
            console.print(f"  {label}: {escape(window.display)}", highlight=False)
    if snapshot.plan:
        console.print(f"  Plan: {escape(snapshot.plan)}", highlight=False)
    if snapshot.error_message:
        console.print(f"[red]Error:[/red] {escape(snapshot.error_message)}", highlight=False)
