"""Cache management commands for codexusage."""

from __future__ import annotations

from datetime import timedelta

import msgspec
import typer
from rich.console import Console
from rich.markup import escape

from codexusage.config.cache import clear_snapshot_cache
from codexusage.config.cache import get_snapshot_age_minutes
from codexusage.config.cache import is_snapshot_fresh
from codexusage.config.cache import load_cached_snapshot
from codexusage.config.cache import snapshot_path
from codexusage.config.settings import get_config
from codexusage.providers import list_provider_ids

# Create cache group
cache_app = typer.Typer(help="Manage the cached usage snapshot.")


class CacheStatus(msgspec.Struct):
    provider: str
    path: str
    state: str  # fresh, stale or none
    age_minutes: int | None = None


def _cache_status(provider_id: str, ttl: timedelta) -> CacheStatus:
    path = snapshot_path(provider_id)
    snapshot = load_cached_snapshot(provider_id)
    if snapshot is None:
        return CacheStatus(provider=provider_id, path=str(path), state="none")

    return CacheStatus(
        provider=provider_id,
        path=str(path),
        state="fresh" if is_snapshot_fresh(snapshot, ttl) else "stale",
        age_minutes=get_snapshot_age_minutes(provider_id),
    )


@cache_app.command("show")
def cache_show_command(ctx: typer.Context) -> None:
    """Show cache status per provider."""
    ttl = timedelta(minutes=get_config().fetch.cache_ttl_minutes)
    statuses = [_cache_status(pid, ttl) for pid in list_provider_ids()]

    if ctx.meta.get("json", False):
        typer.echo(msgspec.json.format(msgspec.json.encode(statuses), indent=2).decode())
        return

    console = Console(soft_wrap=True)
    styles = {"fresh": "green", "stale": "yellow", "none": "dim"}
    for status in statuses:
        age = f", {status.age_minutes}m old" if status.age_minutes is not None else ""
        style = styles[status.state]
        console.print(
            f"{status.provider}: [{style}]{status.state}[/{style}]{age} ({escape(status.path)})",
            highlight=False,
        )


@cache_app.command("clear")
def cache_clear_command(
    provider: str = typer.Argument(
        None,
        help="Provider to clear (default: all)",
    ),
) -> None:
    """Delete cached snapshots."""
    clear_snapshot_cache(provider)
    target = provider or "all providers"
    Console().print(f"Cleared cache for {target}", highlight=False)
