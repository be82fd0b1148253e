"""Top-level usage lookup: cache, strategy chain and sentinel fallback."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from codexusage.config.cache import FileSnapshotStore
from codexusage.config.cache import SnapshotStore
from codexusage.config.settings import Config
from codexusage.config.settings import get_config
from codexusage.core.fetch import execute_fetch_pipeline
from codexusage.models import UsageSnapshot
from codexusage.models import unknown_snapshot
from codexusage.providers import create_provider
from codexusage.providers.base import Provider
from codexusage.strategies.base import FetchOutcome

logger = logging.getLogger(__name__)


class UsageFetcher:
    """Looks up a provider's usage, preferring a fresh cached snapshot.

    Args:
        provider: Provider whose strategies are tried; Codex by default
        store: Where snapshots are cached; the cache directory by default
        ttl: Cache freshness window; fetch.cache_ttl_minutes by default
        config: Configuration; the loaded config file by default
    """

    def __init__(
        self,
        provider: Provider | None = None,
        store: SnapshotStore | None = None,
        ttl: timedelta | None = None,
        config: Config | None = None,
    ) -> None:
        self.config = config or get_config()
        self.provider = provider or create_provider("codex")
        self.store = store if store is not None else FileSnapshotStore()
        self.ttl = ttl or timedelta(minutes=self.config.fetch.cache_ttl_minutes)
        self.last_outcome: FetchOutcome | None = None

    async def fetch(self, use_cache: bool = True) -> FetchOutcome:
        """Run the pipeline and return the full outcome with every attempt."""
        outcome = await execute_fetch_pipeline(
            self.provider.id,
            self.provider.fetch_strategies(),
            store=self.store,
            ttl=self.ttl,
            timeout=self.config.fetch.timeout,
            use_cache=use_cache,
        )
        self.last_outcome = outcome
        return outcome

    async def get_usage(self, use_cache: bool = True) -> UsageSnapshot:
        """Return the current usage snapshot.

        Never raises for strategy failures: when every strategy fails the
        result is the sentinel snapshot with the failures in error_message.
        """
        outcome = await self.fetch(use_cache=use_cache)
        if outcome.success and outcome.snapshot is not None:
            return outcome.snapshot

        logger.warning("All %s strategies failed: %s", self.provider.id, outcome.error)
        return unknown_snapshot(
            f"all strategies failed: {outcome.error}",
            provider=self.provider.id,
        )


async def get_usage(provider_id: str = "codex", use_cache: bool = True) -> UsageSnapshot:
    """Fetch usage for a provider with the default cache and configuration."""
    fetcher = UsageFetcher(provider=create_provider(provider_id))
    return await fetcher.get_usage(use_cache=use_cache)


def get_usage_sync(provider_id: str = "codex", use_cache: bool = True) -> UsageSnapshot:
    """Blocking wrapper around get_usage; must not be called from a running loop."""
    return asyncio.run(_get_usage_and_cleanup(provider_id, use_cache))


async def _get_usage_and_cleanup(provider_id: str, use_cache: bool) -> UsageSnapshot:
    from codexusage.core.http import cleanup

    try:
        return await get_usage(provider_id, use_cache=use_cache)
    finally:
        await cleanup()
