"""Pytest configuration and shared fixtures for codexusage tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import msgspec
import pytest
from rich.logging import RichHandler

from codexusage.config import settings as settings_module
from codexusage.core import http as http_module
from codexusage.errors.types import ErrorCategory
from codexusage.models import (
    ColorBucket,
    LimitWindow,
    PercentKind,
    Source,
    UsageSnapshot,
)
from codexusage.strategies.base import FetchResult, FetchStrategy


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, Path], None, None]:
    """Point every config, cache and credential path into tmp_path.

    Also resets the config singleton and shared HTTP client so tests never
    see state from each other or from the real home directory.
    """
    dirs = {
        "config": tmp_path / "config",
        "cache": tmp_path / "cache",
        "codex_home": tmp_path / "codex-home",
    }
    monkeypatch.setenv("CODEXUSAGE_CONFIG_DIR", str(dirs["config"]))
    monkeypatch.setenv("CODEXUSAGE_CACHE_DIR", str(dirs["cache"]))
    monkeypatch.setenv("CODEX_HOME", str(dirs["codex_home"]))
    monkeypatch.delenv("CODEXUSAGE_STRATEGIES", raising=False)
    monkeypatch.delenv("CODEXUSAGE_CODEX_COMMAND", raising=False)
    monkeypatch.setattr(settings_module, "_config", None)
    monkeypatch.setattr(http_module, "_client", None)
    yield dirs


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Undo the logging setup the CLI callback installs."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    for handler in root.handlers[:]:
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)


@pytest.fixture
def utc_now() -> datetime:
    """Fixed UTC datetime for consistent testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def used_snapshot(utc_now: datetime) -> UsageSnapshot:
    """Snapshot as parsed from /status output (percentage used)."""
    return UsageSnapshot(
        percentage=45,
        display="45% used (resets in 2h 30m)",
        color=ColorBucket.HEALTHY,
        source=Source.CLI,
        last_fetched=utc_now,
        five_hour_limit=LimitWindow(
            percentage=45,
            display="45% used (resets in 2h 30m)",
            reset_descriptor="in 2h 30m",
        ),
        weekly_limit=LimitWindow(
            percentage=20,
            display="20% used (resets in 3d 4h)",
            reset_descriptor="in 3d 4h",
        ),
        percentage_kind=PercentKind.USED,
    )


@pytest.fixture
def fresh_snapshot() -> UsageSnapshot:
    """Remaining-percentage snapshot fetched just now."""
    return UsageSnapshot(
        percentage=95,
        display="95% left (resets 05:09)",
        color=ColorBucket.HEALTHY,
        source=Source.OAUTH,
        last_fetched=datetime.now(timezone.utc),
        five_hour_limit=LimitWindow(
            percentage=95,
            display="95% left (resets 05:09)",
            reset_descriptor="05:09",
        ),
        percentage_kind=PercentKind.REMAINING,
    )


@pytest.fixture
def stale_snapshot(fresh_snapshot: UsageSnapshot) -> UsageSnapshot:
    """The fresh snapshot, ten minutes older."""
    return msgspec.structs.replace(
        fresh_snapshot,
        last_fetched=fresh_snapshot.last_fetched - timedelta(minutes=10),
    )


class StubStrategy(FetchStrategy):
    """Strategy that returns a canned result and counts its calls."""

    def __init__(
        self,
        name: str,
        result: FetchResult | None = None,
        available: bool = True,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.result = result or FetchResult.fail(f"{name} failed", ErrorCategory.PROVIDER)
        self.available = available
        self.error = error
        self.delay = delay
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self.available

    async def fetch(self) -> FetchResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stub_strategy() -> type[StubStrategy]:
    """Factory for scripted fetch strategies."""
    return StubStrategy
