"""Error types and classifications."""

from __future__ import annotations

from enum import StrEnum

import msgspec


class ErrorCategory(StrEnum):
    """Why a fetch strategy failed."""

    TOOL_NOT_FOUND = "tool_not_found"
    NOT_APPLICABLE = "not_applicable"
    AUTH_EXPIRED = "auth_expired"
    PROVIDER = "provider"
    NETWORK = "network"
    PARSE = "parse"
    TIMEOUT = "timeout"
    SUBPROCESS = "subprocess"
    UNKNOWN = "unknown"


class ClassifiedError(msgspec.Struct, frozen=True):
    """Structured error with category and remediation."""

    message: str
    category: ErrorCategory
    remediation: str | None = None
    details: dict | None = None


class CodexUsageError(Exception):
    """Base class for strategy-level failures."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class ToolNotFoundError(CodexUsageError):
    """The codex binary is not on PATH."""

    category = ErrorCategory.TOOL_NOT_FOUND


class NotApplicableError(CodexUsageError):
    """The strategy cannot run with the current setup (e.g. API-key login)."""

    category = ErrorCategory.NOT_APPLICABLE


class AuthExpiredError(CodexUsageError):
    """The backend rejected the stored OAuth token."""

    category = ErrorCategory.AUTH_EXPIRED


class APIError(CodexUsageError):
    """Unexpected HTTP status from the usage endpoint."""

    category = ErrorCategory.PROVIDER

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error {status_code}: {body}")


class UsageParseError(CodexUsageError):
    """No recognizable usage data in a response or transcript."""

    category = ErrorCategory.PARSE


class FetchTimeoutError(CodexUsageError):
    """A subprocess did not answer in time."""

    category = ErrorCategory.TIMEOUT


class SubprocessError(CodexUsageError):
    """Spawning or talking to a codex subprocess failed."""

    category = ErrorCategory.SUBPROCESS


class RPCError(CodexUsageError):
    """The app-server answered a request with a JSON-RPC error."""

    category = ErrorCategory.PROVIDER

    def __init__(self, message: str, code: int = 0) -> None:
        self.code = code
        super().__init__(f"RPC error: {message}")
