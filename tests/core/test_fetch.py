"""Tests for the fetch pipeline."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest

from codexusage.config.cache import MemorySnapshotStore
from codexusage.core.fetch import execute_fetch_pipeline
from codexusage.core.fetch import summarize_attempts
from codexusage.errors.types import ErrorCategory
from codexusage.models import Source
from codexusage.strategies.base import FetchAttempt
from codexusage.strategies.base import FetchResult

TTL = timedelta(minutes=5)


class TestCacheGating:
    """Tests for the fresh-cache short circuit."""

    @pytest.mark.asyncio
    async def test_fresh_cache_skips_strategies(self, stub_strategy, fresh_snapshot):
        """A snapshot younger than the TTL is returned without fetching."""
        store = MemorySnapshotStore({"codex": fresh_snapshot})
        strategy = stub_strategy("oauth")

        outcome = await execute_fetch_pipeline("codex", [strategy], store=store, ttl=TTL)

        assert outcome.success is True
        assert outcome.cached is True
        assert outcome.source == Source.CACHE
        assert outcome.snapshot.source == Source.CACHE
        assert outcome.snapshot.percentage == fresh_snapshot.percentage
        assert strategy.calls == 0

    @pytest.mark.asyncio
    async def test_stale_cache_runs_chain(self, stub_strategy, stale_snapshot, fresh_snapshot):
        store = MemorySnapshotStore({"codex": stale_snapshot})
        strategy = stub_strategy("oauth", FetchResult.ok(fresh_snapshot))

        outcome = await execute_fetch_pipeline("codex", [strategy], store=store, ttl=TTL)

        assert outcome.cached is False
        assert outcome.source == "oauth"
        assert strategy.calls == 1

    @pytest.mark.asyncio
    async def test_use_cache_false_ignores_fresh_cache(self, stub_strategy, fresh_snapshot):
        store = MemorySnapshotStore({"codex": fresh_snapshot})
        strategy = stub_strategy("rpc", FetchResult.ok(fresh_snapshot))

        outcome = await execute_fetch_pipeline(
            "codex", [strategy], store=store, ttl=TTL, use_cache=False
        )

        assert outcome.cached is False
        assert strategy.calls == 1

    @pytest.mark.asyncio
    async def test_saved_under_pipeline_provider_id(self, stub_strategy, fresh_snapshot):
        """The snapshot is cached under the id the next run looks up."""
        store = MemorySnapshotStore()
        strategy = stub_strategy("oauth", FetchResult.ok(fresh_snapshot))

        first = await execute_fetch_pipeline("other", [strategy], store=store, ttl=TTL)
        second = await execute_fetch_pipeline("other", [strategy], store=store, ttl=TTL)

        assert list(store.snapshots) == ["other"]
        assert first.snapshot.provider == "other"
        assert second.cached is True
        assert strategy.calls == 1


class TestStrategyChain:
    """Tests for ordered strategy execution."""

    @pytest.mark.asyncio
    async def test_first_success_wins_and_is_cached(self, stub_strategy, fresh_snapshot):
        store = MemorySnapshotStore()
        first = stub_strategy("oauth")
        second = stub_strategy("rpc", FetchResult.ok(fresh_snapshot))
        third = stub_strategy("cli", FetchResult.ok(fresh_snapshot))

        outcome = await execute_fetch_pipeline(
            "codex", [first, second, third], store=store, ttl=TTL
        )

        assert outcome.success is True
        assert outcome.source == "rpc"
        assert [a.strategy for a in outcome.attempts] == ["oauth", "rpc"]
        assert outcome.attempts[0].category == ErrorCategory.PROVIDER
        assert outcome.attempts[1].success is True
        assert third.calls == 0
        assert store.snapshots["codex"] == fresh_snapshot

    @pytest.mark.asyncio
    async def test_unavailable_strategy_is_skipped(self, stub_strategy, fresh_snapshot):
        skipped = stub_strategy("oauth", available=False)
        working = stub_strategy("rpc", FetchResult.ok(fresh_snapshot))

        outcome = await execute_fetch_pipeline(
            "codex", [skipped, working], store=MemorySnapshotStore(), ttl=TTL
        )

        assert skipped.calls == 0
        assert outcome.attempts[0].error == "not available"
        assert outcome.attempts[0].category == ErrorCategory.TOOL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_each_strategy_tried_once(self, stub_strategy):
        strategies = [stub_strategy(name) for name in ("oauth", "rpc", "cli")]

        await execute_fetch_pipeline(
            "codex", strategies, store=MemorySnapshotStore(), ttl=TTL
        )

        assert [s.calls for s in strategies] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_all_fail_joins_errors(self, stub_strategy):
        store = MemorySnapshotStore()
        strategies = [
            stub_strategy("oauth", available=False),
            stub_strategy("rpc", FetchResult.fail("RPC error: boom", ErrorCategory.PROVIDER)),
            stub_strategy("cli", FetchResult.fail("no usage data", ErrorCategory.PARSE)),
        ]

        outcome = await execute_fetch_pipeline("codex", strategies, store=store, ttl=TTL)

        assert outcome.success is False
        assert outcome.snapshot is None
        assert outcome.error == (
            "oauth: not available; rpc: RPC error: boom; cli: no usage data"
        )
        assert store.snapshots == {}

    @pytest.mark.asyncio
    async def test_no_strategies(self):
        outcome = await execute_fetch_pipeline(
            "codex", [], store=MemorySnapshotStore(), ttl=TTL
        )

        assert outcome.success is False
        assert outcome.error == "no fetch strategies configured"


class TestStrategyFailures:
    """Tests for exceptions and timeouts escaping strategies."""

    @pytest.mark.asyncio
    async def test_outer_timeout(self, stub_strategy, fresh_snapshot):
        slow = stub_strategy("rpc", FetchResult.ok(fresh_snapshot), delay=1.0)

        outcome = await execute_fetch_pipeline(
            "codex", [slow], store=MemorySnapshotStore(), ttl=TTL, timeout=0.05
        )

        assert outcome.success is False
        assert outcome.attempts[0].category == ErrorCategory.TIMEOUT
        assert "timed out" in outcome.attempts[0].error

    @pytest.mark.asyncio
    async def test_exception_is_classified(self, stub_strategy, fresh_snapshot):
        broken = stub_strategy("oauth", error=httpx.ConnectError("refused"))
        working = stub_strategy("rpc", FetchResult.ok(fresh_snapshot))

        outcome = await execute_fetch_pipeline(
            "codex", [broken, working], store=MemorySnapshotStore(), ttl=TTL
        )

        assert outcome.success is True
        assert outcome.attempts[0].category == ErrorCategory.NETWORK

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, stub_strategy, fresh_snapshot):
        slow = stub_strategy("cli", FetchResult.ok(fresh_snapshot), delay=10.0)
        task = asyncio.create_task(
            execute_fetch_pipeline("codex", [slow], store=MemorySnapshotStore(), ttl=TTL)
        )
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestSummarizeAttempts:
    """Tests for summarize_attempts."""

    def test_skips_successes(self):
        attempts = [
            FetchAttempt(strategy="oauth", success=False, error="expired"),
            FetchAttempt(strategy="rpc", success=True),
        ]
        assert summarize_attempts(attempts) == "oauth: expired"
