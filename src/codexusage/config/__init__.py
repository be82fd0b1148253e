"""Configuration management for codexusage."""

from codexusage.config.cache import (
    DEFAULT_TTL,
    FileSnapshotStore,
    MemorySnapshotStore,
    SnapshotStore,
    cache_snapshot,
    clear_snapshot_cache,
    get_snapshot_age_minutes,
    is_snapshot_fresh,
    load_cached_snapshot,
    snapshot_path,
)
from codexusage.config.credentials import (
    CodexCredential,
    CodexTokens,
    auth_file_path,
    load_codex_credential,
)
from codexusage.config.paths import (
    cache_dir,
    codex_home,
    config_dir,
    config_file,
    snapshots_dir,
)
from codexusage.config.settings import (
    CodexConfig,
    Config,
    FetchConfig,
    get_config,
    load_config,
    reload_config,
)

__all__ = [
    # paths
    "config_dir",
    "cache_dir",
    "snapshots_dir",
    "config_file",
    "codex_home",
    # settings
    "Config",
    "FetchConfig",
    "CodexConfig",
    "get_config",
    "load_config",
    "reload_config",
    # credentials
    "CodexCredential",
    "CodexTokens",
    "auth_file_path",
    "load_codex_credential",
    # cache
    "DEFAULT_TTL",
    "SnapshotStore",
    "FileSnapshotStore",
    "MemorySnapshotStore",
    "snapshot_path",
    "cache_snapshot",
    "load_cached_snapshot",
    "is_snapshot_fresh",
    "get_snapshot_age_minutes",
    "clear_snapshot_cache",
]
