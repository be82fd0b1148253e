"""Pseudo-terminal strategy for the Codex provider.

Runs the interactive `codex` REPL inside a pseudo-terminal, answers the
terminal queries it sends while starting up, waits for the input prompt,
types `/status` and captures the screen output for the parser.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
from enum import Enum

import pexpect

from codexusage.config.settings import get_config
from codexusage.errors.types import CodexUsageError
from codexusage.errors.types import FetchTimeoutError
from codexusage.errors.types import SubprocessError
from codexusage.errors.types import ToolNotFoundError
from codexusage.providers.codex.parser import parse_status_output
from codexusage.providers.codex.parser import strip_ansi
from codexusage.strategies.base import FetchResult
from codexusage.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)

TERMINAL_ROWS = 60
TERMINAL_COLS = 160
READ_SIZE = 8192
POLL_INTERVAL = 0.2
DRAIN_DELAY = 0.5
DRAIN_READS = 5

PROMPT_MARKER = "›"
IDLE_PHRASE = "context left"
STATUS_COMMAND = b"/status\n"
COMPLETION_HEADINGS = ("5h limit", "Weekly limit")

# Inquiries a real terminal would answer, and the canned reply for each
TERMINAL_REPLIES: tuple[tuple[tuple[bytes, ...], bytes], ...] = (
    ((b"\x1b[6n",), b"\x1b[30;1R"),  # cursor position
    ((b"\x1b[c", b"\x1b[>"), b"\x1b[?62;1;2;6;7;8;9;15;18;21;22c"),  # device attributes
    ((b"\x1b]10;?",), b"\x1b]10;rgb:ffff/ffff/ffff\x1b\\"),  # foreground color
    ((b"\x1b]11;?",), b"\x1b]11;rgb:0000/0000/0000\x1b\\"),  # background color
)


class SessionState(Enum):
    """Progress of one /status capture."""

    STARTING = "starting"  # Waiting for the prompt
    READY = "ready"  # Prompt seen, command not sent yet
    STATUS_SENT = "status_sent"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    EXITED = "exited"  # Child went away before the limits were printed


TERMINAL_STATES = frozenset(
    {SessionState.COMPLETED, SessionState.TIMED_OUT, SessionState.EXITED}
)

_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.STARTING: frozenset(
        {SessionState.READY, SessionState.TIMED_OUT, SessionState.EXITED}
    ),
    SessionState.READY: frozenset(
        {SessionState.STATUS_SENT, SessionState.TIMED_OUT, SessionState.EXITED}
    ),
    SessionState.STATUS_SENT: TERMINAL_STATES,
}


def terminal_replies(chunk: bytes) -> list[bytes]:
    """Return the replies owed for the terminal inquiries in chunk."""
    return [
        reply
        for inquiries, reply in TERMINAL_REPLIES
        if any(inquiry in chunk for inquiry in inquiries)
    ]


def spawn_codex(executable: str) -> pexpect.spawn:
    """Start codex attached to a generously sized pseudo-terminal."""
    env = dict(
        os.environ,
        TERM="xterm-256color",
        COLORTERM="truecolor",
        LINES=str(TERMINAL_ROWS),
        COLUMNS=str(TERMINAL_COLS),
    )
    return pexpect.spawn(
        executable,
        [],
        env=env,
        dimensions=(TERMINAL_ROWS, TERMINAL_COLS),
    )


class StatusSession:
    """Drives one codex child through the /status exchange.

    The child is always closed when capture() returns or raises.
    """

    def __init__(
        self,
        child: pexpect.spawn,
        *,
        ceiling: float = 10.0,
        status_timeout: float = 5.0,
        settle_delay: float = 0.8,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.child = child
        self.ceiling = ceiling
        self.status_timeout = status_timeout
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval
        self.state = SessionState.STARTING
        self.transcript = bytearray()
        self._status_sent_at: float | None = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def clean_text(self) -> str:
        """Transcript so far with escape sequences removed."""
        return strip_ansi(self.transcript.decode("utf-8", errors="replace"))

    def _transition(self, state: SessionState) -> None:
        if state not in _TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"illegal transition {self.state.name} -> {state.name}")
        logger.debug("codex session %s -> %s", self.state.value, state.value)
        self.state = state

    async def capture(self) -> str:
        """Run the exchange and return the raw transcript.

        Returns once the limits were printed, the child exited, or a
        timeout expired; check state to tell which.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.ceiling
        try:
            while not self.finished:
                if loop.time() >= deadline:
                    self._transition(SessionState.TIMED_OUT)
                    break

                chunk = await self._read()
                if chunk is None:
                    self._transition(SessionState.EXITED)
                    break
                if chunk:
                    self._consume(chunk)
                await self._advance(loop, new_output=bool(chunk))
        finally:
            self.close()

        return self.transcript.decode("utf-8", errors="replace")

    async def _read(self) -> bytes | None:
        """Read one chunk; b"" when nothing arrived, None at EOF."""
        try:
            return await asyncio.to_thread(
                self.child.read_nonblocking, READ_SIZE, self.poll_interval
            )
        except pexpect.TIMEOUT:
            return b""
        except pexpect.EOF:
            return None

    def _consume(self, chunk: bytes) -> None:
        self.transcript.extend(chunk)
        for reply in terminal_replies(chunk):
            self._send(reply)

    def _send(self, data: bytes) -> None:
        try:
            self.child.send(data)
        except OSError as e:
            raise SubprocessError(f"failed to write to codex: {e}") from e

    async def _advance(self, loop: asyncio.AbstractEventLoop, new_output: bool) -> None:
        if self.state is SessionState.STARTING and new_output:
            text = self.clean_text
            if PROMPT_MARKER in text and IDLE_PHRASE in text:
                self._transition(SessionState.READY)

        if self.state is SessionState.READY:
            await asyncio.sleep(self.settle_delay)
            self._send(STATUS_COMMAND)
            self._status_sent_at = loop.time()
            self._transition(SessionState.STATUS_SENT)
            return

        if self.state is SessionState.STATUS_SENT:
            if new_output and any(h in self.clean_text for h in COMPLETION_HEADINGS):
                await self._drain()
                self._transition(SessionState.COMPLETED)
            elif loop.time() - self._status_sent_at > self.status_timeout:
                self._transition(SessionState.TIMED_OUT)

    async def _drain(self) -> None:
        """Collect the rest of the status panel after the headings showed up."""
        await asyncio.sleep(DRAIN_DELAY)
        for _ in range(DRAIN_READS):
            chunk = await self._read()
            if chunk is None:
                break
            if chunk:
                self._consume(chunk)

    def close(self) -> None:
        """Kill the child; codex must never be left running."""
        try:
            self.child.close(force=True)
        except (OSError, pexpect.ExceptionPexpect) as e:
            logger.warning("Failed to terminate codex (pid %s): %s", self.child.pid, e)


async def run_codex_status(
    command: str = "codex",
    *,
    ceiling: float = 10.0,
    status_timeout: float = 5.0,
    settle_delay: float = 0.8,
) -> str:
    """Capture the output of `/status` from an interactive codex session.

    Raises:
        ToolNotFoundError: If codex is not on PATH
        FetchTimeoutError: If the limits never showed up
        SubprocessError: If codex could not be started or exited early
    """
    if sys.platform == "win32":
        raise SubprocessError("codex /status requires a TTY; no PTY support on Windows")

    executable = shutil.which(command)
    if executable is None:
        raise ToolNotFoundError(f"{command} CLI not found in PATH")

    try:
        child = spawn_codex(executable)
    except (OSError, pexpect.ExceptionPexpect) as e:
        raise SubprocessError(f"failed to start codex with PTY: {e}") from e

    session = StatusSession(
        child,
        ceiling=ceiling,
        status_timeout=status_timeout,
        settle_delay=settle_delay,
    )
    transcript = await session.capture()

    if session.state is SessionState.COMPLETED:
        return transcript
    if session.state is SessionState.TIMED_OUT:
        raise FetchTimeoutError("timed out waiting for codex /status output")
    raise SubprocessError("codex exited before printing /status output")


class CodexCLIStrategy(FetchStrategy):
    """Fetch Codex usage by typing /status into the interactive CLI."""

    name = "cli"

    def __init__(self, command: str | None = None) -> None:
        config = get_config().codex
        self.command = command or config.command
        self.ceiling = config.pty_ceiling
        self.status_timeout = config.status_timeout
        self.settle_delay = config.settle_delay

    def is_available(self) -> bool:
        """Check for a PTY-capable platform and the codex CLI."""
        return sys.platform != "win32" and shutil.which(self.command) is not None

    async def fetch(self) -> FetchResult:
        try:
            transcript = await run_codex_status(
                self.command,
                ceiling=self.ceiling,
                status_timeout=self.status_timeout,
                settle_delay=self.settle_delay,
            )
            snapshot = parse_status_output(transcript)
        except CodexUsageError as e:
            return FetchResult.from_error(e)

        return FetchResult.ok(snapshot)
