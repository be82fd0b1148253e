"""Snapshot caching for codexusage."""
from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from pathlib import Path
from typing import Protocol

import msgspec

from codexusage.config.paths import snapshots_dir
from codexusage.models import UsageSnapshot
from codexusage.models import validate_snapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


def snapshot_path(provider_id: str) -> Path:
    """Get path for provider's cached snapshot."""
    return snapshots_dir() / f"{provider_id}.json"


def cache_snapshot(snapshot: UsageSnapshot) -> None:
    """Save usage snapshot to cache, replacing any previous one."""
    path = snapshot_path(snapshot.provider)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = msgspec.json.format(msgspec.json.encode(snapshot), indent=2)
    path.write_bytes(data)


def load_cached_snapshot(provider_id: str) -> UsageSnapshot | None:
    """Load cached snapshot for provider, fresh or not."""
    path = snapshot_path(provider_id)
    if not path.exists():
        return None

    try:
        data = path.read_bytes()
        snapshot = msgspec.json.decode(data, type=UsageSnapshot)
    except (msgspec.DecodeError, OSError) as e:
        logger.debug("Ignoring unreadable cache file %s: %s", path, e)
        return None

    errors = validate_snapshot(snapshot)
    if errors:
        logger.debug("Ignoring invalid cache file %s: %s", path, "; ".join(errors))
        return None
    return snapshot


def is_snapshot_fresh(
    snapshot: UsageSnapshot,
    ttl: timedelta = DEFAULT_TTL,
    now: datetime | None = None,
) -> bool:
    """Check if a cached snapshot is within the TTL."""
    return snapshot.is_fresh(ttl, now or datetime.now(UTC))


def get_snapshot_age_minutes(provider_id: str) -> int | None:
    """Get age of cached snapshot in minutes."""
    snapshot = load_cached_snapshot(provider_id)
    if snapshot is None:
        return None

    return int(snapshot.age().total_seconds() / 60)


def clear_snapshot_cache(provider_id: str | None = None) -> None:
    """Clear snapshot cache for a provider or all providers."""
    if provider_id:
        snapshot_path(provider_id).unlink(missing_ok=True)
        return

    directory = snapshots_dir()
    if not directory.exists():
        return
    for path in directory.iterdir():
        if path.is_file():
            path.unlink()


class SnapshotStore(Protocol):
    """Load/save port the fetch pipeline uses for caching."""

    def load(self, provider_id: str) -> UsageSnapshot | None: ...

    def save(self, snapshot: UsageSnapshot) -> None: ...


class FileSnapshotStore:
    """Snapshot store backed by JSON files in the cache directory."""

    def load(self, provider_id: str) -> UsageSnapshot | None:
        return load_cached_snapshot(provider_id)

    def save(self, snapshot: UsageSnapshot) -> None:
        try:
            cache_snapshot(snapshot)
        except OSError as e:
            logger.warning("Failed to write usage cache: %s", e)


class MemorySnapshotStore:
    """In-process snapshot store, used in tests and for one-shot callers."""

    def __init__(self, snapshots: dict[str, UsageSnapshot] | None = None) -> None:
        self.snapshots: dict[str, UsageSnapshot] = dict(snapshots or {})

    def load(self, provider_id: str) -> UsageSnapshot | None:
        return self.snapshots.get(provider_id)

    def save(self, snapshot: UsageSnapshot) -> None:
        self.snapshots[snapshot.provider] = snapshot
