"""Platform-specific paths for codexusage configuration and cache."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_dir
from platformdirs import user_config_dir

PACKAGE_NAME = "codexusage"


def _get_env_path(env_var: str, fallback: Path) -> Path:
    """Get path from environment variable or fallback."""
    if env_value := os.environ.get(env_var):
        return Path(env_value)
    return fallback


def config_dir() -> Path:
    """Get user config directory.

    Respects CODEXUSAGE_CONFIG_DIR environment variable.
    """
    base_dir = Path(user_config_dir(PACKAGE_NAME))
    return _get_env_path("CODEXUSAGE_CONFIG_DIR", base_dir)


def cache_dir() -> Path:
    """Get user cache directory.

    Respects CODEXUSAGE_CACHE_DIR environment variable.
    """
    base_dir = Path(user_cache_dir(PACKAGE_NAME))
    return _get_env_path("CODEXUSAGE_CACHE_DIR", base_dir)


def snapshots_dir() -> Path:
    """Get cached snapshots directory."""
    return cache_dir() / "snapshots"


def config_file() -> Path:
    """Get main config.toml path."""
    return config_dir() / "config.toml"


def codex_home() -> Path:
    """Get the Codex CLI home directory.

    Respects CODEX_HOME, the same variable the codex CLI itself reads.
    """
    return _get_env_path("CODEX_HOME", Path.home() / ".codex")
