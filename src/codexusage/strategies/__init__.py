"""Fetch strategies for codexusage."""

from __future__ import annotations

from codexusage.strategies.base import FetchAttempt
from codexusage.strategies.base import FetchOutcome
from codexusage.strategies.base import FetchResult
from codexusage.strategies.base import FetchStrategy

__all__ = [
    "FetchStrategy",
    "FetchResult",
    "FetchAttempt",
    "FetchOutcome",
]
