"""OAuth strategy for the Codex provider."""

from __future__ import annotations

import logging

import msgspec

from codexusage.config.credentials import CodexCredential
from codexusage.config.credentials import auth_file_path
from codexusage.config.credentials import load_codex_credential
from codexusage.config.settings import get_config
from codexusage.core.http import get_http_client
from codexusage.errors.types import APIError
from codexusage.errors.types import AuthExpiredError
from codexusage.errors.types import CodexUsageError
from codexusage.errors.types import ErrorCategory
from codexusage.errors.types import NotApplicableError
from codexusage.errors.types import UsageParseError
from codexusage.models import Source
from codexusage.models import UsageSnapshot
from codexusage.providers.codex.parser import RateWindow
from codexusage.providers.codex.parser import snapshot_from_windows
from codexusage.strategies.base import FetchResult
from codexusage.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)

BODY_EXCERPT_LENGTH = 200


class WindowSnapshot(msgspec.Struct, frozen=True):
    """A rate-limit window in the usage endpoint response."""

    used_percent: float = 0.0
    reset_at: int | None = None
    limit_window_seconds: int | None = None


class RateLimitDetail(msgspec.Struct, frozen=True):
    primary_window: WindowSnapshot | None = None
    secondary_window: WindowSnapshot | None = None


class CreditDetail(msgspec.Struct, frozen=True):
    has_credits: bool = False
    unlimited: bool = False
    balance: str | float | None = None


class OAuthUsageResponse(msgspec.Struct, frozen=True):
    """Response body of the ChatGPT usage endpoint."""

    plan_type: str | None = None
    rate_limit: RateLimitDetail | None = None
    credits: CreditDetail | None = None


def _rate_window(window: WindowSnapshot | None) -> RateWindow | None:
    if window is None:
        return None
    return RateWindow(used_percent=window.used_percent, resets_at=window.reset_at)


def parse_usage_response(content: bytes) -> UsageSnapshot:
    """Parse the usage endpoint body into a percentage-remaining snapshot.

    Expected format:
    {
        "plan_type": "plus",
        "rate_limit": {
            "primary_window": { "used_percent": 5, "reset_at": 1738726260 },
            "secondary_window": { "used_percent": 2, "reset_at": 1739204520 }
        },
        "credits": { "has_credits": false, "unlimited": false }
    }
    """
    try:
        data = msgspec.json.decode(content, type=OAuthUsageResponse)
    except msgspec.DecodeError as e:
        raise UsageParseError(f"failed to parse usage response: {e}") from e

    if data.rate_limit is None:
        raise UsageParseError("no rate limit data in response")

    return snapshot_from_windows(
        _rate_window(data.rate_limit.primary_window),
        _rate_window(data.rate_limit.secondary_window),
        source=Source.OAUTH,
        plan=data.plan_type,
    )


class CodexOAuthStrategy(FetchStrategy):
    """Fetch Codex usage from the ChatGPT backend using the CLI's OAuth token."""

    name = "oauth"
    unavailable_category = ErrorCategory.NOT_APPLICABLE

    def __init__(self, usage_url: str | None = None) -> None:
        self.usage_url = usage_url or get_config().codex.usage_url

    def is_available(self) -> bool:
        """Check if the Codex credential file exists."""
        return auth_file_path().exists()

    async def fetch(self) -> FetchResult:
        """Fetch usage using the stored access token."""
        try:
            credential = self._load_credential()
            snapshot = await self._request_usage(credential)
        except CodexUsageError as e:
            return FetchResult.from_error(e)

        return FetchResult.ok(snapshot)

    def _load_credential(self) -> CodexCredential:
        """Load credentials fresh on every call."""
        credential = load_codex_credential()
        if credential is None or not (credential.has_oauth or credential.api_key):
            raise NotApplicableError("no valid credentials found in auth.json")

        if credential.is_api_key_only:
            raise NotApplicableError("API key mode does not support OAuth usage API")

        return credential

    async def _request_usage(self, credential: CodexCredential) -> UsageSnapshot:
        headers = {
            "Authorization": f"Bearer {credential.tokens.access_token}",
            "Accept": "application/json",
        }
        if credential.tokens.account_id:
            headers["ChatGPT-Account-Id"] = credential.tokens.account_id

        logger.debug("Requesting usage from %s", self.usage_url)
        async with get_http_client() as client:
            response = await client.get(self.usage_url, headers=headers)

        logger.debug("Usage endpoint answered %s", response.status_code)
        if response.status_code in (401, 403):
            raise AuthExpiredError(
                "unauthorized: token may be expired, run 'codex' to re-authenticate"
            )
        if response.status_code != 200:
            raise APIError(
                response.status_code,
                response.text[:BODY_EXCERPT_LENGTH],
            )

        return parse_usage_response(response.content)
