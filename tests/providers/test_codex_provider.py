"""Tests for the Codex provider and the provider registry."""

from __future__ import annotations

import pytest

from codexusage.providers import create_provider
from codexusage.providers import get_provider
from codexusage.providers import list_provider_ids
from codexusage.providers import register_provider
from codexusage.providers.codex import CodexProvider
from codexusage.providers.codex.oauth import CodexOAuthStrategy
from codexusage.providers.codex.pty import CodexCLIStrategy
from codexusage.providers.codex.rpc import CodexRPCStrategy


class TestCodexProvider:
    """Tests for CodexProvider."""

    def test_metadata(self):
        assert CodexProvider.metadata.id == "codex"
        assert CodexProvider.metadata.name == "Codex"
        assert CodexProvider.metadata.dashboard_url == "https://chatgpt.com/codex/settings/usage"

    def test_id_and_name(self):
        provider = CodexProvider()
        assert provider.id == "codex"
        assert provider.name == "Codex"

    def test_default_strategy_order(self):
        strategies = CodexProvider().fetch_strategies()

        assert [type(s) for s in strategies] == [
            CodexOAuthStrategy,
            CodexRPCStrategy,
            CodexCLIStrategy,
        ]
        assert [s.name for s in strategies] == ["oauth", "rpc", "cli"]

    def test_order_from_environment(self, monkeypatch):
        monkeypatch.setenv("CODEXUSAGE_STRATEGIES", "cli,oauth")

        strategies = CodexProvider().fetch_strategies()

        assert [s.name for s in strategies] == ["cli", "oauth"]

    def test_unknown_strategy_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("CODEXUSAGE_STRATEGIES", "rpc,scrape")

        strategies = CodexProvider().fetch_strategies()

        assert [s.name for s in strategies] == ["rpc"]
        assert "Ignoring unknown fetch strategy 'scrape'" in caplog.text

    def test_command_override_reaches_strategies(self, monkeypatch):
        monkeypatch.setenv("CODEXUSAGE_CODEX_COMMAND", "/opt/codex")

        strategies = CodexProvider().fetch_strategies()

        assert strategies[1].command == "/opt/codex"
        assert strategies[2].command == "/opt/codex"


class TestProviderRegistry:
    """Tests for the provider registry."""

    def test_codex_registered(self):
        assert get_provider("codex") is CodexProvider
        assert "codex" in list_provider_ids()

    def test_create_provider(self):
        assert isinstance(create_provider("codex"), CodexProvider)

    def test_create_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("nope")

    def test_register_requires_metadata(self):
        class Broken:
            pass

        with pytest.raises(ValueError, match="must define metadata"):
            register_provider(Broken)
