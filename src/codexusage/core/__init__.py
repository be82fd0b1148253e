"""Core orchestration and utilities for codexusage."""

from codexusage.core.fetch import execute_fetch_pipeline, summarize_attempts
from codexusage.core.http import cleanup, get_http_client, get_timeout_config

__all__ = [
    # http
    "get_http_client",
    "cleanup",
    "get_timeout_config",
    # fetch
    "execute_fetch_pipeline",
    "summarize_attempts",
]
