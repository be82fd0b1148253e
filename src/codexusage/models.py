"""Data models for codexusage.

Defines the normalized snapshot every fetch strategy must produce, plus the
two color-bucket conventions used to tag it.
"""

from __future__ import annotations

from datetime import UTC
from datetime import datetime
from datetime import timedelta
from enum import StrEnum

import msgspec


class Source(StrEnum):
    """Where a snapshot came from."""

    OAUTH = "oauth"
    RPC = "rpc"
    CLI = "cli"
    CACHE = "cache"
    DEFAULT = "default"  # Sentinel returned when every strategy failed


class PercentKind(StrEnum):
    """What a snapshot's percentage means."""

    USED = "used"  # Parsed /status transcript
    REMAINING = "remaining"  # OAuth and RPC responses


class ColorBucket(StrEnum):
    """Severity tag attached to a snapshot."""

    HEALTHY = "green"
    CAUTION = "yellow"
    CRITICAL = "red"

    @property
    def severity(self) -> int:
        """Return an orderable severity rank (0 = healthy)."""
        match self:
            case ColorBucket.HEALTHY:
                return 0
            case ColorBucket.CAUTION:
                return 1
            case ColorBucket.CRITICAL:
                return 2


class LimitWindow(msgspec.Struct, frozen=True, rename="camel"):
    """A single rate-limit window (5h or weekly)."""

    percentage: int = 0  # 0-100
    display: str = ""  # e.g. "45% used (resets in 2h 30m)"
    reset_descriptor: str = ""  # "in 2h 30m", "03:31" or "03:31 on 5 Feb"


class UsageSnapshot(msgspec.Struct, frozen=True, rename="camel"):
    """Normalized, point-in-time usage record."""

    percentage: int  # Primary window value, see percentage_kind
    display: str
    color: ColorBucket
    source: Source
    last_fetched: datetime
    error_message: str | None = None
    five_hour_limit: LimitWindow = msgspec.field(default_factory=LimitWindow)
    weekly_limit: LimitWindow = msgspec.field(default_factory=LimitWindow)
    percentage_kind: PercentKind = PercentKind.USED
    provider: str = "codex"
    plan: str | None = None

    def age(self, now: datetime | None = None) -> timedelta:
        """Return how long ago this snapshot was fetched."""
        now = now or datetime.now(self.last_fetched.tzinfo)
        return now - self.last_fetched

    def is_fresh(self, ttl: timedelta, now: datetime | None = None) -> bool:
        """Check if the snapshot is younger than ttl."""
        return self.age(now) < ttl

    def remaining_percentage(self) -> int:
        """Return the primary value expressed as percentage remaining."""
        if self.percentage_kind is PercentKind.REMAINING:
            return self.percentage
        return clamp_percentage(100 - self.percentage)


def clamp_percentage(value: float) -> int:
    """Truncate toward zero and clamp into [0, 100]."""
    return max(0, min(100, int(value)))


def used_color(percentage: int) -> ColorBucket:
    """Bucket for used-percentage sources (parsed /status output)."""
    if percentage >= 80:
        return ColorBucket.CRITICAL
    elif percentage >= 60:
        return ColorBucket.CAUTION
    return ColorBucket.HEALTHY


def remaining_color(percentage: int) -> ColorBucket:
    """Bucket for remaining-percentage sources (OAuth and RPC)."""
    if percentage <= 20:
        return ColorBucket.CRITICAL
    elif percentage <= 40:
        return ColorBucket.CAUTION
    return ColorBucket.HEALTHY


def unknown_snapshot(error_message: str, provider: str = "codex") -> UsageSnapshot:
    """Build the sentinel snapshot returned when no strategy succeeded.

    Shows a full quota so the launcher never blocks on missing data, with
    both windows zeroed and the failure recorded in error_message.
    """
    return UsageSnapshot(
        percentage=100,
        display="100%",
        color=ColorBucket.HEALTHY,
        source=Source.DEFAULT,
        last_fetched=datetime.now(UTC),
        error_message=error_message,
        percentage_kind=PercentKind.REMAINING,
        provider=provider,
    )


def validate_snapshot(snapshot: UsageSnapshot) -> list[str]:
    """Return list of validation errors, empty if valid."""
    errors = []
    for name, value in (
        ("percentage", snapshot.percentage),
        ("fiveHourLimit", snapshot.five_hour_limit.percentage),
        ("weeklyLimit", snapshot.weekly_limit.percentage),
    ):
        if not 0 <= value <= 100:
            errors.append(f"{name} {value} out of range [0, 100]")
    if snapshot.last_fetched.tzinfo is None:
        errors.append("lastFetched must be timezone-aware")
    return errors
