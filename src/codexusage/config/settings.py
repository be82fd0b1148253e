"""Configuration structures and loading for codexusage."""

import logging
import os
import tomllib
from pathlib import Path

import msgspec

logger = logging.getLogger(__name__)

# Default values
DEFAULT_TIMEOUT = 45.0
DEFAULT_CACHE_TTL_MINUTES = 5
DEFAULT_STRATEGIES = ["oauth", "rpc", "cli"]
DEFAULT_USAGE_URL = "https://chatgpt.com/backend-api/wham/usage"


# Fetch configuration
class FetchConfig(msgspec.Struct, omit_defaults=True):
    """Fetch pipeline settings."""

    timeout: float = DEFAULT_TIMEOUT  # Outer ceiling for one strategy attempt
    cache_ttl_minutes: float = DEFAULT_CACHE_TTL_MINUTES
    strategies: list[str] = msgspec.field(
        default_factory=lambda: list(DEFAULT_STRATEGIES)
    )


# Codex-specific configuration
class CodexConfig(msgspec.Struct, omit_defaults=True):
    """How to reach the codex CLI and its backend."""

    command: str = "codex"
    usage_url: str = DEFAULT_USAGE_URL
    oauth_timeout: float = 30.0
    rpc_timeout: float = 15.0
    pty_ceiling: float = 10.0
    status_timeout: float = 5.0
    settle_delay: float = 0.8


# Main configuration
class Config(msgspec.Struct, omit_defaults=True):
    """Main configuration structure."""

    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    codex: CodexConfig = msgspec.field(default_factory=CodexConfig)


def _load_from_toml(path: Path) -> dict:
    """Load configuration from TOML file."""
    if not path.exists():
        return {}

    with path.open("rb") as f:
        return tomllib.load(f)


def convert_config(data: dict) -> Config:
    """Convert raw dict to Config struct."""
    return msgspec.convert(data, type=Config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config.

    CODEXUSAGE_STRATEGIES: Comma-separated strategy order (e.g. "rpc,cli")
    CODEXUSAGE_CODEX_COMMAND: Name or path of the codex binary
    """
    if "CODEXUSAGE_STRATEGIES" in os.environ:
        strategies_str = os.environ["CODEXUSAGE_STRATEGIES"]
        strategies = [s.strip() for s in strategies_str.split(",") if s.strip()]
        fetch = msgspec.structs.replace(config.fetch, strategies=strategies)
        config = msgspec.structs.replace(config, fetch=fetch)

    if command := os.environ.get("CODEXUSAGE_CODEX_COMMAND"):
        codex = msgspec.structs.replace(config.codex, command=command)
        config = msgspec.structs.replace(config, codex=codex)

    return config


# Config state storage
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = load_config()
    return _config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file with defaults.

    A malformed file is logged and ignored rather than aborting the fetch.
    """
    from .paths import config_file

    config_path = path or config_file()

    try:
        raw_data = _load_from_toml(config_path)
        config = convert_config(raw_data) if raw_data else Config()
    except (tomllib.TOMLDecodeError, msgspec.ValidationError, OSError) as e:
        logger.warning("Ignoring invalid config file %s: %s", config_path, e)
        config = Config()

    # Apply environment variable overrides
    return _apply_env_overrides(config)
