"""JSON-RPC strategy for the Codex provider.

`codex app-server` speaks line-delimited JSON-RPC 2.0 over stdin/stdout. The
server is started read-only and untrusted so the lookup cannot touch the
user's workspace, asked for its rate limits, and killed again.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import msgspec

from codexusage import __version__
from codexusage.config.settings import get_config
from codexusage.errors.types import CodexUsageError
from codexusage.errors.types import FetchTimeoutError
from codexusage.errors.types import RPCError
from codexusage.errors.types import SubprocessError
from codexusage.errors.types import ToolNotFoundError
from codexusage.errors.types import UsageParseError
from codexusage.models import Source
from codexusage.models import UsageSnapshot
from codexusage.providers.codex.parser import RateWindow
from codexusage.providers.codex.parser import snapshot_from_windows
from codexusage.strategies.base import FetchResult
from codexusage.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)

RPC_ARGS = ("-s", "read-only", "-a", "untrusted", "app-server")
DEFAULT_TIMEOUT = 15.0
ACCOUNT_TIMEOUT = 3.0  # Cap for the optional account/read call
READ_LIMIT = 1024 * 1024  # Longest stdout line accepted, in bytes
LINE_BUFFER = 64


# Wire messages
class RPCRequest(msgspec.Struct, kw_only=True):
    jsonrpc: str = "2.0"
    id: int
    method: str
    params: dict[str, Any] = msgspec.field(default_factory=dict)


class RPCNotification(msgspec.Struct, kw_only=True):
    jsonrpc: str = "2.0"
    method: str
    params: dict[str, Any] = msgspec.field(default_factory=dict)


class RPCErrorDetail(msgspec.Struct):
    code: int = 0
    message: str = ""


class RPCResponse(msgspec.Struct):
    """Any incoming line; notifications carry no id."""

    id: int | float | str | None = None
    result: Any = None
    error: RPCErrorDetail | None = None


# account/rateLimits/read
class RPCRateLimitWindow(msgspec.Struct, rename="camel"):
    used_percent: float = 0.0
    window_duration_mins: int | None = None
    resets_at: int | None = None


class RPCCredits(msgspec.Struct, rename="camel"):
    has_credits: bool = False
    unlimited: bool = False
    balance: str | None = None


class RPCRateLimitSnapshot(msgspec.Struct, rename="camel"):
    primary: RPCRateLimitWindow | None = None
    secondary: RPCRateLimitWindow | None = None
    credits: RPCCredits | None = None


class RPCRateLimitsResponse(msgspec.Struct, rename="camel"):
    rate_limits: RPCRateLimitSnapshot = msgspec.field(
        default_factory=RPCRateLimitSnapshot
    )


# account/read
class RPCAccountDetails(msgspec.Struct, rename="camel"):
    type: str = ""
    email: str | None = None
    plan_type: str | None = None


class RPCAccountResponse(msgspec.Struct, rename="camel"):
    account: RPCAccountDetails | None = None
    requires_openai_auth: bool = False


_response_decoder = msgspec.json.Decoder(RPCResponse)


class CodexRPCClient:
    """Client for one `codex app-server` session.

    Use CodexRPCClient.open(); the subprocess is killed when the block exits.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._process = process
        self.timeout = timeout
        self._next_id = 1
        self._eof = False
        # Items are stdout lines, a read error, or None once stdout closes
        self._lines: asyncio.Queue[bytes | Exception | None] = asyncio.Queue(
            maxsize=LINE_BUFFER
        )
        self._reader = asyncio.create_task(self._read_lines())

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        command: str = "codex",
        args: tuple[str, ...] = RPC_ARGS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> AsyncIterator[CodexRPCClient]:
        """Start the app-server and yield a connected client."""
        executable = shutil.which(command)
        if executable is None:
            raise ToolNotFoundError(f"{command} CLI not found in PATH")

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                limit=READ_LIMIT,
            )
        except OSError as e:
            raise SubprocessError(f"failed to start {command} app-server: {e}") from e

        logger.debug("Started app-server (pid %s)", process.pid)
        client = cls(process, timeout=timeout)
        try:
            yield client
        finally:
            await client.close()

    @property
    def pid(self) -> int:
        return self._process.pid

    async def _read_lines(self) -> None:
        """Feed stdout lines into the queue until the stream closes."""
        stdout = self._process.stdout
        try:
            while line := await stdout.readline():
                await self._lines.put(line)
        except (OSError, ValueError) as e:
            await self._lines.put(e)
        await self._lines.put(None)

    async def close(self) -> None:
        """Terminate the app-server and reap it."""
        self._reader.cancel()
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        await self._process.wait()
        await asyncio.wait([self._reader])
        logger.debug("app-server exited with %s", self._process.returncode)

    async def _write(self, message: RPCRequest | RPCNotification) -> None:
        stdin = self._process.stdin
        try:
            stdin.write(msgspec.json.encode(message) + b"\n")
            await stdin.drain()
        except OSError as e:
            raise SubprocessError(f"failed to write to app-server: {e}") from e

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for the response with the same id.

        Args:
            method: JSON-RPC method name
            params: Request params, empty by default
            timeout: Seconds to wait for the answer; the client timeout by default

        Returns:
            The response's result member

        Raises:
            RPCError: If the server answered with an error
            FetchTimeoutError: If no answer arrived within the timeout
            SubprocessError: If the server's output closed or broke
        """
        request_id = self._next_id
        self._next_id += 1

        await self._write(RPCRequest(id=request_id, method=method, params=params or {}))
        logger.debug("-> %s (id=%d)", method, request_id)

        try:
            return await asyncio.wait_for(
                self._wait_for_response(request_id),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"timeout waiting for {method} response") from e

    async def _wait_for_response(self, request_id: int) -> Any:
        while True:
            if self._eof:
                raise SubprocessError("app-server closed its output")

            item = await self._lines.get()
            if item is None:
                self._eof = True
                continue
            if isinstance(item, Exception):
                self._eof = True
                raise SubprocessError(f"error reading app-server output: {item}") from item

            try:
                response = _response_decoder.decode(item)
            except msgspec.DecodeError:
                continue

            response_id = response.id
            # JSON numbers like 1.0 are still our integer ids
            if isinstance(response_id, float) and response_id.is_integer():
                response_id = int(response_id)
            # Notifications have no id; string ids are not ours
            if not isinstance(response_id, int):
                continue
            if response_id != request_id:
                logger.debug("Skipping response for id=%d", response_id)
                continue

            if response.error is not None:
                raise RPCError(response.error.message, response.error.code)
            logger.debug("<- id=%d", request_id)
            return response.result

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification; no response is expected."""
        await self._write(RPCNotification(method=method, params=params or {}))
        logger.debug("-> %s (notification)", method)

    async def initialize(self) -> None:
        """Perform the initialize handshake."""
        await self.request(
            "initialize",
            {"clientInfo": {"name": "codexusage", "version": __version__}},
        )
        await self.notify("initialized")

    async def fetch_rate_limits(self) -> RPCRateLimitsResponse:
        result = await self.request("account/rateLimits/read")
        try:
            return msgspec.convert(result, type=RPCRateLimitsResponse)
        except msgspec.ValidationError as e:
            raise UsageParseError(f"failed to decode rate limits: {e}") from e

    async def fetch_account(self) -> RPCAccountResponse:
        result = await self.request(
            "account/read", timeout=min(self.timeout, ACCOUNT_TIMEOUT)
        )
        try:
            return msgspec.convert(result, type=RPCAccountResponse)
        except msgspec.ValidationError as e:
            raise UsageParseError(f"failed to decode account: {e}") from e


def _rate_window(window: RPCRateLimitWindow | None) -> RateWindow | None:
    if window is None:
        return None
    return RateWindow(used_percent=window.used_percent, resets_at=window.resets_at)


def convert_rate_limits(
    response: RPCRateLimitsResponse,
    plan: str | None = None,
) -> UsageSnapshot:
    """Convert an account/rateLimits/read result into a snapshot."""
    return snapshot_from_windows(
        _rate_window(response.rate_limits.primary),
        _rate_window(response.rate_limits.secondary),
        source=Source.RPC,
        plan=plan,
    )


async def _read_plan(client: CodexRPCClient) -> str | None:
    """Look up the plan type; missing account data is not an error."""
    try:
        account = await client.fetch_account()
    except CodexUsageError as e:
        logger.debug("account/read failed: %s", e)
        return None
    return account.account.plan_type if account.account else None


async def fetch_usage_via_rpc(
    command: str = "codex",
    args: tuple[str, ...] = RPC_ARGS,
    timeout: float = DEFAULT_TIMEOUT,
) -> UsageSnapshot:
    """Run one app-server session and return its rate limits as a snapshot."""
    async with CodexRPCClient.open(command, args=args, timeout=timeout) as client:
        await client.initialize()
        rate_limits = await client.fetch_rate_limits()
        plan = await _read_plan(client)

    return convert_rate_limits(rate_limits, plan=plan)


class CodexRPCStrategy(FetchStrategy):
    """Fetch Codex usage through `codex app-server`."""

    name = "rpc"

    def __init__(self, command: str | None = None, timeout: float | None = None) -> None:
        config = get_config().codex
        self.command = command or config.command
        self.timeout = timeout or config.rpc_timeout

    def is_available(self) -> bool:
        """Check if the codex CLI is on PATH."""
        return shutil.which(self.command) is not None

    async def fetch(self) -> FetchResult:
        try:
            snapshot = await fetch_usage_via_rpc(self.command, timeout=self.timeout)
        except CodexUsageError as e:
            return FetchResult.from_error(e)

        return FetchResult.ok(snapshot)
