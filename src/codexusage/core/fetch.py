"""Fetch pipeline for executing provider fetch strategies."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta

import msgspec

from codexusage.config.cache import DEFAULT_TTL
from codexusage.config.cache import FileSnapshotStore
from codexusage.config.cache import SnapshotStore
from codexusage.config.settings import get_config
from codexusage.errors.classify import classify_exception
from codexusage.errors.types import ErrorCategory
from codexusage.models import Source
from codexusage.strategies.base import FetchAttempt
from codexusage.strategies.base import FetchOutcome
from codexusage.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


def summarize_attempts(attempts: list[FetchAttempt]) -> str:
    """Join every failed attempt into one "strategy: error" line."""
    if not attempts:
        return "no fetch strategies configured"
    return "; ".join(
        f"{attempt.strategy}: {attempt.error}"
        for attempt in attempts
        if not attempt.success
    )


async def execute_fetch_pipeline(
    provider_id: str,
    strategies: list[FetchStrategy],
    store: SnapshotStore | None = None,
    ttl: timedelta = DEFAULT_TTL,
    timeout: float | None = None,
    use_cache: bool = True,
) -> FetchOutcome:
    """Execute fetch strategies in priority order.

    A fresh cached snapshot short-circuits the chain. Otherwise each
    strategy gets exactly one attempt until one succeeds; its snapshot is
    saved to the store. Failed pipelines never touch the store.

    Args:
        provider_id: Provider identifier (also the cache key)
        strategies: Ordered list of fetch strategies to try
        store: Snapshot store, file-backed by default
        ttl: How long a cached snapshot stays fresh
        timeout: Outer ceiling for one strategy attempt, in seconds
        use_cache: Whether a fresh cached snapshot may be returned

    Returns:
        FetchOutcome with result or the joined failures
    """
    store = store if store is not None else FileSnapshotStore()
    timeout = timeout if timeout is not None else get_config().fetch.timeout
    attempts: list[FetchAttempt] = []

    if use_cache:
        cached = store.load(provider_id)
        if cached is not None and cached.is_fresh(ttl):
            logger.debug("Using cached %s snapshot from %s", provider_id, cached.last_fetched)
            return FetchOutcome(
                provider_id=provider_id,
                success=True,
                snapshot=msgspec.structs.replace(cached, source=Source.CACHE),
                source=Source.CACHE,
                attempts=attempts,
                cached=True,
            )

    # Try each strategy in order
    for strategy in strategies:
        if not strategy.is_available():
            logger.debug("Skipping unavailable strategy %s", strategy.name)
            attempts.append(
                FetchAttempt(
                    strategy=strategy.name,
                    success=False,
                    error="not available",
                    category=strategy.unavailable_category,
                )
            )
            continue

        start_time = time.monotonic()
        try:
            result = await asyncio.wait_for(strategy.fetch(), timeout=timeout)
        except asyncio.TimeoutError:
            attempts.append(
                FetchAttempt(
                    strategy=strategy.name,
                    success=False,
                    error=f"timed out after {timeout:g}s",
                    category=ErrorCategory.TIMEOUT,
                    duration_ms=_elapsed_ms(start_time),
                )
            )
            logger.warning("Strategy %s timed out", strategy.name)
            continue
        except Exception as e:
            classified = classify_exception(e)
            attempts.append(
                FetchAttempt(
                    strategy=strategy.name,
                    success=False,
                    error=classified.message,
                    category=classified.category,
                    duration_ms=_elapsed_ms(start_time),
                )
            )
            logger.warning("Strategy %s failed: %s", strategy.name, classified.message)
            continue

        duration_ms = _elapsed_ms(start_time)
        if result.success and result.snapshot is not None:
            snapshot = msgspec.structs.replace(result.snapshot, provider=provider_id)
            attempts.append(
                FetchAttempt(strategy=strategy.name, success=True, duration_ms=duration_ms)
            )
            logger.debug("Strategy %s succeeded in %dms", strategy.name, duration_ms)
            store.save(snapshot)
            return FetchOutcome(
                provider_id=provider_id,
                success=True,
                snapshot=snapshot,
                source=strategy.name,
                attempts=attempts,
            )

        attempts.append(
            FetchAttempt(
                strategy=strategy.name,
                success=False,
                error=result.error or "no usage data",
                category=result.category,
                duration_ms=duration_ms,
            )
        )
        logger.warning("Strategy %s failed: %s", strategy.name, result.error)

    return FetchOutcome(
        provider_id=provider_id,
        success=False,
        snapshot=None,
        source=None,
        attempts=attempts,
        error=summarize_attempts(attempts),
    )
