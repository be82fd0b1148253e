"""Remediation hints shown alongside strategy failures."""

from __future__ import annotations

from codexusage.errors.types import ErrorCategory

REMEDIATION_TEMPLATES: dict[ErrorCategory, str] = {
    ErrorCategory.TOOL_NOT_FOUND: (
        "Install the codex CLI and make sure it is on your PATH."
    ),
    ErrorCategory.NOT_APPLICABLE: (
        "Sign in with your ChatGPT account (run `codex login`) to enable usage lookups."
    ),
    ErrorCategory.AUTH_EXPIRED: "Run `codex` to sign in again.",
    ErrorCategory.NETWORK: "Check your network connection and try again.",
    ErrorCategory.TIMEOUT: "Try again. If the issue persists, run `codex` manually.",
}


def get_remediation(category: ErrorCategory) -> str | None:
    """Return the remediation hint for an error category, if any."""
    return REMEDIATION_TEMPLATES.get(category)
