"""Fetch strategy base classes."""

from __future__ import annotations

from abc import ABC, abstractmethod

import msgspec

from codexusage.errors.types import CodexUsageError
from codexusage.errors.types import ErrorCategory
from codexusage.models import UsageSnapshot


class FetchResult(msgspec.Struct, frozen=True):
    """Result of a fetch attempt."""

    success: bool
    snapshot: UsageSnapshot | None = None
    error: str | None = None
    category: ErrorCategory | None = None

    @classmethod
    def ok(cls, snapshot: UsageSnapshot) -> FetchResult:
        return cls(success=True, snapshot=snapshot)

    @classmethod
    def fail(
        cls,
        error: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ) -> FetchResult:
        return cls(success=False, error=error, category=category)

    @classmethod
    def from_error(cls, error: CodexUsageError) -> FetchResult:
        """Convert a strategy-level exception into a failed result."""
        return cls.fail(str(error), error.category)


class FetchAttempt(msgspec.Struct):
    """Record of a single fetch attempt."""

    strategy: str
    success: bool
    error: str | None = None
    category: ErrorCategory | None = None
    duration_ms: int = 0


class FetchOutcome(msgspec.Struct):
    """Complete result of running the strategy chain for a tool."""

    provider_id: str
    success: bool
    snapshot: UsageSnapshot | None
    source: str | None  # Which strategy succeeded
    attempts: list[FetchAttempt]  # All attempts for debugging
    error: str | None = None  # Summary of every failure if all failed
    cached: bool = False  # Whether result came from cache


class FetchStrategy(ABC):
    """Base class for fetch strategies."""

    # Recorded when is_available() says no
    unavailable_category: ErrorCategory = ErrorCategory.TOOL_NOT_FOUND

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier ('oauth', 'rpc', 'cli')."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this strategy can be attempted.

        Returns True if credentials/binaries exist.
        Should be fast (no network calls, no subprocesses).
        """
        ...

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """
        Attempt to fetch usage data exactly once.

        Returns FetchResult with snapshot or error details.
        """
        ...
