"""Codex (OpenAI/ChatGPT) provider for codexusage."""

from __future__ import annotations

import logging

from codexusage.config.settings import get_config
from codexusage.providers.base import Provider
from codexusage.providers.base import ProviderMetadata
from codexusage.providers.codex.oauth import CodexOAuthStrategy
from codexusage.providers.codex.pty import CodexCLIStrategy
from codexusage.providers.codex.rpc import CodexRPCStrategy
from codexusage.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)

STRATEGY_CLASSES: dict[str, type[FetchStrategy]] = {
    "oauth": CodexOAuthStrategy,
    "rpc": CodexRPCStrategy,
    "cli": CodexCLIStrategy,
}


class CodexProvider(Provider):
    """Provider for Codex (OpenAI/ChatGPT) usage."""

    metadata = ProviderMetadata(
        id="codex",
        name="Codex",
        description="OpenAI's Codex CLI",
        homepage="https://chatgpt.com",
        dashboard_url="https://chatgpt.com/codex/settings/usage",
    )

    def fetch_strategies(self) -> list[FetchStrategy]:
        """Return fetch strategies in the configured order.

        Default priority order:
        1. OAuth - usage endpoint with the CLI's stored token
        2. RPC - `codex app-server` rate limit query
        3. CLI - `/status` typed into the interactive REPL
        """
        strategies = []
        for name in get_config().fetch.strategies:
            strategy_cls = STRATEGY_CLASSES.get(name)
            if strategy_cls is None:
                logger.warning("Ignoring unknown fetch strategy %r", name)
                continue
            strategies.append(strategy_cls())
        return strategies
