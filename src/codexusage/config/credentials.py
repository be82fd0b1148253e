"""Read-only access to the Codex CLI credential file."""

from __future__ import annotations

import logging
from pathlib import Path

import msgspec

from codexusage.config.paths import codex_home

logger = logging.getLogger(__name__)


class CodexTokens(msgspec.Struct, frozen=True):
    """OAuth tokens written by `codex login`."""

    access_token: str = ""
    refresh_token: str = ""
    id_token: str = ""
    account_id: str = ""


class CodexCredential(msgspec.Struct, frozen=True):
    """Contents of auth.json.

    Never written back: token refresh is left to the codex CLI.
    """

    tokens: CodexTokens = msgspec.field(default_factory=CodexTokens)
    last_refresh: str | None = None
    api_key: str | None = msgspec.field(default=None, name="OPENAI_API_KEY")

    @property
    def has_oauth(self) -> bool:
        return bool(self.tokens.access_token)

    @property
    def is_api_key_only(self) -> bool:
        return bool(self.api_key) and not self.has_oauth


def auth_file_path() -> Path:
    """Get the path of the Codex CLI auth.json."""
    return codex_home() / "auth.json"


def load_codex_credential(path: Path | None = None) -> CodexCredential | None:
    """Load the Codex credential file.

    Returns:
        The parsed credential, or None if the file is missing or unreadable
    """
    path = path or auth_file_path()
    if not path.exists():
        return None

    try:
        return msgspec.json.decode(path.read_bytes(), type=CodexCredential)
    except (msgspec.DecodeError, OSError) as e:
        logger.debug("Failed to read credential file %s: %s", path, e)
        return None
