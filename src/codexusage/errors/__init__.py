"""Error handling for codexusage."""

from codexusage.errors.classify import classify_exception
from codexusage.errors.messages import REMEDIATION_TEMPLATES, get_remediation
from codexusage.errors.types import (
    APIError,
    AuthExpiredError,
    ClassifiedError,
    CodexUsageError,
    ErrorCategory,
    FetchTimeoutError,
    NotApplicableError,
    RPCError,
    SubprocessError,
    ToolNotFoundError,
    UsageParseError,
)

__all__ = [
    # Core types
    "ErrorCategory",
    "ClassifiedError",
    # Exceptions
    "CodexUsageError",
    "ToolNotFoundError",
    "NotApplicableError",
    "AuthExpiredError",
    "APIError",
    "UsageParseError",
    "FetchTimeoutError",
    "SubprocessError",
    "RPCError",
    # Classification
    "classify_exception",
    # Message templates
    "REMEDIATION_TEMPLATES",
    "get_remediation",
]
