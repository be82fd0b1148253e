"""codexusage: Find out how much Codex quota is left."""

from __future__ import annotations

__version__ = "0.1.0"

from codexusage.models import ColorBucket
from codexusage.models import LimitWindow
from codexusage.models import PercentKind
from codexusage.models import Source
from codexusage.models import UsageSnapshot
from codexusage.models import remaining_color
from codexusage.models import unknown_snapshot
from codexusage.models import used_color

__all__ = [
    "__version__",
    "ColorBucket",
    "LimitWindow",
    "PercentKind",
    "Source",
    "UsageSnapshot",
    "remaining_color",
    "unknown_snapshot",
    "used_color",
    "get_usage",
    "get_usage_sync",
]


async def get_usage(provider_id: str = "codex") -> UsageSnapshot:
    """Fetch usage for a tool; never raises for fetch failures."""
    from codexusage.core.orchestrator import get_usage as _get_usage

    return await _get_usage(provider_id)


def get_usage_sync(provider_id: str = "codex") -> UsageSnapshot:
    """Blocking wrapper around get_usage for non-async callers."""
    from codexusage.core.orchestrator import get_usage_sync as _get_usage_sync

    return _get_usage_sync(provider_id)


def main() -> None:
    """Entry point for the codexusage CLI."""
    from codexusage.cli.app import run_app

    run_app()
