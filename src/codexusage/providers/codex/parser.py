"""Normalize Codex usage data into UsageSnapshot.

Two conversion paths live here:

- parse_status_output() reads the text the interactive `/status` command
  prints. Two format generations are understood:

      5h limit: 45% used (resets in 2h 30m)
      5h limit: [████████████████████] 100% left (resets 03:31 on 5 Feb)

  The result reports percentage *used*.

- snapshot_from_windows() converts the structured rate-limit windows returned
  by the OAuth endpoint and the app-server RPC. The result reports percentage
  *remaining*.
"""

from __future__ import annotations

import re
from datetime import UTC
from datetime import datetime

import msgspec

from codexusage.errors.types import UsageParseError
from codexusage.models import LimitWindow
from codexusage.models import PercentKind
from codexusage.models import Source
from codexusage.models import UsageSnapshot
from codexusage.models import clamp_percentage
from codexusage.models import remaining_color
from codexusage.models import used_color

# CSI sequences, OSC strings (BEL or ST terminated) and two-byte escapes
ANSI_PATTERN = re.compile(
    r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]"
)

USED_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*used", re.IGNORECASE)
LEFT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*(?:left|remaining)", re.IGNORECASE)
RESET_IN_PATTERN = re.compile(r"resets in ([^)\n]+)", re.IGNORECASE)
RESET_ON_PATTERN = re.compile(
    r"resets (\d{1,2}:\d{2}) on (\d{1,2}\s+[A-Za-z]+)", re.IGNORECASE
)
RESET_AT_PATTERN = re.compile(r"resets (\d{1,2}:\d{2})", re.IGNORECASE)

FIVE_HOUR_HEADINGS = ("5h limit", "5-hour")
WEEKLY_HEADINGS = ("weekly",)


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from text."""
    return ANSI_PATTERN.sub("", text)


def _used_percentage(line: str) -> int | None:
    """Extract percentage used from a limit line."""
    if match := USED_PATTERN.search(line):
        return clamp_percentage(float(match.group(1)))
    if match := LEFT_PATTERN.search(line):
        return clamp_percentage(100 - float(match.group(1)))
    return None


def _reset_descriptor(line: str) -> str | None:
    """Extract the reset descriptor from a limit line."""
    if match := RESET_IN_PATTERN.search(line):
        return f"in {match.group(1).strip()}"
    if match := RESET_ON_PATTERN.search(line):
        day_month = " ".join(match.group(2).split())
        return f"{match.group(1)} on {day_month}"
    if match := RESET_AT_PATTERN.search(line):
        return match.group(1)
    return None


def _format_display(percentage: int, suffix: str, descriptor: str) -> str:
    if descriptor:
        return f"{percentage}% {suffix} (resets {descriptor})"
    return f"{percentage}% {suffix}"


class _Section:
    """Accumulates what the transcript says about one limit window."""

    def __init__(self, headings: tuple[str, ...]) -> None:
        self.headings = headings
        self.percentage: int | None = None
        self.descriptor = ""

    def matches(self, line: str) -> bool:
        lowered = line.lower()
        return any(heading.lower() in lowered for heading in self.headings)

    def feed(self, line: str) -> None:
        percentage = _used_percentage(line)
        if percentage is not None:
            self.percentage = percentage
        if descriptor := _reset_descriptor(line):
            self.descriptor = descriptor

    @property
    def found(self) -> bool:
        return self.percentage is not None

    def window(self) -> LimitWindow:
        if self.percentage is None:
            return LimitWindow()
        return LimitWindow(
            percentage=self.percentage,
            display=_format_display(self.percentage, "used", self.descriptor),
            reset_descriptor=self.descriptor,
        )


def parse_status_output(output: str) -> UsageSnapshot:
    """Parse `/status` output into a snapshot of percentage used.

    Args:
        output: Transcript text; escape sequences are stripped first

    Returns:
        UsageSnapshot with source=cli

    Raises:
        UsageParseError: If neither limit section carries a percentage
    """
    five_hour = _Section(FIVE_HOUR_HEADINGS)
    weekly = _Section(WEEKLY_HEADINGS)

    for line in strip_ansi(output).splitlines():
        if five_hour.matches(line):
            five_hour.feed(line)
        if weekly.matches(line):
            weekly.feed(line)

    if not five_hour.found and not weekly.found:
        raise UsageParseError("no usage data found in codex /status output")

    primary = five_hour if five_hour.found else weekly
    primary_window = primary.window()

    return UsageSnapshot(
        percentage=primary_window.percentage,
        display=primary_window.display,
        color=used_color(primary_window.percentage),
        source=Source.CLI,
        last_fetched=datetime.now(UTC),
        five_hour_limit=five_hour.window(),
        weekly_limit=weekly.window(),
        percentage_kind=PercentKind.USED,
    )


class RateWindow(msgspec.Struct, frozen=True):
    """A rate-limit window as reported by the backend."""

    used_percent: float = 0.0
    resets_at: int | None = None  # Unix epoch seconds


def format_reset_time(resets_at: int, with_date: bool = False) -> str:
    """Format an epoch reset time in local time ("05:09" or "16:22 on 10 Feb")."""
    moment = datetime.fromtimestamp(resets_at).astimezone()
    if with_date:
        return f"{moment:%H:%M} on {moment.day} {moment:%b}"
    return f"{moment:%H:%M}"


def remaining_window(window: RateWindow, with_date: bool = False) -> LimitWindow:
    """Convert a backend window into a percentage-remaining LimitWindow."""
    remaining = clamp_percentage(100 - int(window.used_percent))
    descriptor = ""
    if window.resets_at and window.resets_at > 0:
        descriptor = format_reset_time(window.resets_at, with_date=with_date)
    return LimitWindow(
        percentage=remaining,
        display=_format_display(remaining, "left", descriptor),
        reset_descriptor=descriptor,
    )


def snapshot_from_windows(
    primary: RateWindow | None,
    secondary: RateWindow | None,
    source: Source,
    plan: str | None = None,
) -> UsageSnapshot:
    """Build a percentage-remaining snapshot from primary/secondary windows.

    The primary window is the 5h limit and the secondary the weekly limit;
    when only the weekly window is present it becomes the headline value.

    Raises:
        UsageParseError: If both windows are missing
    """
    if primary is None and secondary is None:
        raise UsageParseError("no rate limit data available")

    five_hour = remaining_window(primary) if primary else LimitWindow()
    weekly = remaining_window(secondary, with_date=True) if secondary else LimitWindow()
    headline = five_hour if primary else weekly

    return UsageSnapshot(
        percentage=headline.percentage,
        display=headline.display,
        color=remaining_color(headline.percentage),
        source=source,
        last_fetched=datetime.now(UTC),
        five_hour_limit=five_hour,
        weekly_limit=weekly,
        percentage_kind=PercentKind.REMAINING,
        plan=plan,
    )
