"""Tests for the codexusage command line."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from codexusage import __version__
from codexusage.cli.app import ExitCode
from codexusage.cli.app import app
from codexusage.config.cache import cache_snapshot
from codexusage.config.cache import snapshot_path
from codexusage.models import unknown_snapshot

runner = CliRunner()


@pytest.fixture
def mock_get_usage():
    """Patch UsageFetcher.get_usage; set .return_value per test."""
    with patch(
        "codexusage.cli.commands.usage.UsageFetcher.get_usage",
        new_callable=AsyncMock,
    ) as mock:
        yield mock


class TestUsageCommand:
    """Tests for the default usage output."""

    def test_default_command(self, mock_get_usage, used_snapshot):
        mock_get_usage.return_value = used_snapshot

        result = runner.invoke(app, [])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Codex: 45% used (resets in 2h 30m)" in result.stdout
        assert "(cli)" in result.stdout
        assert "Weekly limit: 20% used (resets in 3d 4h)" in result.stdout
        mock_get_usage.assert_awaited_once_with(use_cache=True)

    def test_usage_subcommand(self, mock_get_usage, fresh_snapshot):
        mock_get_usage.return_value = fresh_snapshot

        result = runner.invoke(app, ["usage"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Codex: 95% left (resets 05:09)" in result.stdout

    @pytest.mark.parametrize("args", [["--json"], ["usage", "--json"], ["--json", "usage"]])
    def test_json_output(self, mock_get_usage, used_snapshot, args):
        mock_get_usage.return_value = used_snapshot

        result = runner.invoke(app, args)
        data = json.loads(result.stdout)

        assert result.exit_code == ExitCode.SUCCESS
        assert data["percentage"] == 45
        assert data["source"] == "cli"
        assert data["fiveHourLimit"]["resetDescriptor"] == "in 2h 30m"

    @pytest.mark.parametrize("args", [["--refresh"], ["usage", "--refresh"]])
    def test_refresh_bypasses_cache(self, mock_get_usage, used_snapshot, args):
        mock_get_usage.return_value = used_snapshot

        runner.invoke(app, args)

        mock_get_usage.assert_awaited_once_with(use_cache=False)

    def test_sentinel_exits_nonzero(self, mock_get_usage):
        mock_get_usage.return_value = unknown_snapshot(
            "all strategies failed: oauth: not available"
        )

        result = runner.invoke(app, [])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Codex: 100%" in result.stdout
        assert "all strategies failed: oauth: not available" in result.stdout

    def test_sentinel_json_exits_nonzero(self, mock_get_usage):
        mock_get_usage.return_value = unknown_snapshot("nothing worked")

        result = runner.invoke(app, ["--json"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert json.loads(result.stdout)["errorMessage"] == "nothing worked"

    def test_verbose_enables_debug_logging(self, mock_get_usage, used_snapshot):
        mock_get_usage.return_value = used_snapshot

        runner.invoke(app, ["--verbose"])

        assert logging.getLogger().level == logging.DEBUG

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert result.stdout.strip() == f"codexusage {__version__}"


class TestCacheCommands:
    """Tests for the cache command group."""

    def test_show_fresh(self, fresh_snapshot):
        cache_snapshot(fresh_snapshot)

        result = runner.invoke(app, ["cache", "show"])

        assert result.exit_code == 0
        assert "codex: fresh, 0m old" in result.stdout

    def test_show_stale(self, stale_snapshot):
        cache_snapshot(stale_snapshot)

        result = runner.invoke(app, ["cache", "show"])

        assert "codex: stale, 10m old" in result.stdout

    def test_show_naive_timestamp(self, fresh_snapshot):
        """A cache file without a UTC offset shows as empty instead of crashing."""
        cache_snapshot(fresh_snapshot)
        path = snapshot_path("codex")
        data = json.loads(path.read_text())
        data["lastFetched"] = "2025-01-15T12:00:00"
        path.write_text(json.dumps(data))

        result = runner.invoke(app, ["cache", "show"])

        assert result.exit_code == 0
        assert "codex: none" in result.stdout

    def test_show_empty_json(self):
        result = runner.invoke(app, ["--json", "cache", "show"])
        data = json.loads(result.stdout)

        assert data == [
            {
                "provider": "codex",
                "path": str(snapshot_path("codex")),
                "state": "none",
                "age_minutes": None,
            }
        ]

    def test_clear(self, fresh_snapshot):
        cache_snapshot(fresh_snapshot)

        result = runner.invoke(app, ["cache", "clear"])

        assert result.exit_code == 0
        assert "Cleared cache for all providers" in result.stdout
        assert not snapshot_path("codex").exists()

    def test_clear_one_provider(self, fresh_snapshot):
        cache_snapshot(fresh_snapshot)

        result = runner.invoke(app, ["cache", "clear", "codex"])

        assert "Cleared cache for codex" in result.stdout
        assert not snapshot_path("codex").exists()
