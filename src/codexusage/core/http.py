"""HTTP client with connection pooling for codexusage."""

from contextlib import asynccontextmanager

import httpx

from codexusage import __version__
from codexusage.config.settings import get_config

USER_AGENT = f"codexusage/{__version__}"

# Global HTTP client
_client: httpx.AsyncClient | None = None


def get_timeout_config() -> httpx.Timeout:
    """Get timeout configuration from settings."""
    config = get_config()
    return httpx.Timeout(config.codex.oauth_timeout, connect=10.0)


@asynccontextmanager
async def get_http_client():
    """Get or create the shared HTTP client.

    Usage:
        async with get_http_client() as client:
            response = await client.get(...)
    """
    global _client

    if _client is None:
        limits = httpx.Limits(
            max_connections=10,
            max_keepalive_connections=2,
        )
        _client = httpx.AsyncClient(
            timeout=get_timeout_config(),
            limits=limits,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    try:
        yield _client
    finally:
        # Don't close - keep for reuse
        pass


async def cleanup() -> None:
    """Close the HTTP client.

    Should be called on application shutdown.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
