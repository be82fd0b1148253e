"""Exception classification for structured error handling."""

from __future__ import annotations

import asyncio

import httpx
import msgspec

from codexusage.errors.messages import get_remediation
from codexusage.errors.types import APIError
from codexusage.errors.types import ClassifiedError
from codexusage.errors.types import CodexUsageError
from codexusage.errors.types import ErrorCategory


def _classified(
    message: str,
    category: ErrorCategory,
    details: dict | None = None,
) -> ClassifiedError:
    return ClassifiedError(
        message=message,
        category=category,
        remediation=get_remediation(category),
        details=details,
    )


def classify_exception(e: BaseException) -> ClassifiedError:
    """Classify any exception into a structured error."""

    if isinstance(e, APIError):
        return _classified(
            str(e),
            e.category,
            details={"status_code": e.status_code},
        )

    if isinstance(e, CodexUsageError):
        return _classified(str(e), e.category)

    # httpx errors
    if isinstance(e, httpx.TimeoutException):
        return _classified("Request timed out", ErrorCategory.TIMEOUT)

    if isinstance(e, httpx.ConnectError):
        return _classified("Failed to connect to server", ErrorCategory.NETWORK)

    if isinstance(e, httpx.HTTPError):
        return _classified(f"HTTP error: {e}", ErrorCategory.NETWORK)

    # Parse errors
    if isinstance(e, msgspec.DecodeError):
        return _classified(
            "Failed to parse response",
            ErrorCategory.PARSE,
            details={"error": str(e)},
        )

    if isinstance(e, (KeyError, ValueError, TypeError)):
        return _classified(f"Invalid response format: {e}", ErrorCategory.PARSE)

    # Async errors
    if isinstance(e, asyncio.TimeoutError):
        return _classified("Operation timed out", ErrorCategory.TIMEOUT)

    if isinstance(e, FileNotFoundError):
        filename = getattr(e, "filename", None)
        return _classified(
            f"File not found: {filename}" if filename else "File not found",
            ErrorCategory.TOOL_NOT_FOUND,
        )

    if isinstance(e, OSError):
        return _classified(f"Subprocess failure: {e}", ErrorCategory.SUBPROCESS)

    return _classified(
        str(e) or type(e).__name__,
        ErrorCategory.UNKNOWN,
        details={"type": type(e).__name__},
    )
