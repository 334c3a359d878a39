"""Shell Handler: the Bash tool.

Invariants:
    - Commands matching DANGEROUS_PATTERNS are refused before any process starts
    - cwd is the session working directory; the command itself is not path-confined
    - stdout is capped at 100000 chars (the process is terminated on overflow),
      stderr at 50000 chars
    - On timeout the process group gets SIGTERM, then SIGKILL after 1 second
    - The process never outlives the tool call, including when the call is cancelled

Design Decisions:
    - asyncio.create_subprocess_exec with an explicit shell argv over shell=True:
      one code path for POSIX (/bin/bash -c) and Windows (cmd.exe /c)
    - New process session on POSIX so signals reach the command's children too
    - Incremental UTF-8 decoding: multi-byte characters split across reads survive
"""

import asyncio
import codecs
import logging
import os
import re
import signal

from agentweb.core.domain_types import ToolResult
from agentweb.services.tool_input import clamped_int, require_str

logger = logging.getLogger(__name__)

DANGEROUS_PATTERNS = (
    re.compile(r"rm\s+-rf\s+[/~]", re.IGNORECASE),
    re.compile(r"mkfs\.", re.IGNORECASE),
    re.compile(r"dd\s+if=", re.IGNORECASE),
    re.compile(r">\s*/dev/sd", re.IGNORECASE),
    re.compile(r"chmod\s+-R\s+777\s+/", re.IGNORECASE),
    re.compile(r":\(\)\{\s*:\|:&\s*\};:"),
)

STDOUT_LIMIT = 100_000
STDERR_LIMIT = 50_000
KILL_GRACE_SECONDS = 1.0
MAX_TIMEOUT_MS = 600_000
TRUNCATED_MARKER = "\n... (output truncated)"

IS_WINDOWS = os.name == "nt"


def shell_argv(command: str) -> list[str]:
    if IS_WINDOWS:
        return ["cmd.exe", "/c", command]
    return ["/bin/bash", "-c", command]


def is_dangerous(command: str) -> bool:
    return any(p.search(command) for p in DANGEROUS_PATTERNS)


class OutputCapture:
    """Accumulates decoded output up to `limit` characters."""

    def __init__(self, limit: int):
        self.limit = limit
        self.truncated = False
        self._parts: list[str] = []
        self._size = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes) -> None:
        if self.truncated:
            return
        text = self._decoder.decode(data)
        room = self.limit - self._size
        if len(text) > room:
            text = text[:room]
            self.truncated = True
        self._parts.append(text)
        self._size += len(text)

    @property
    def text(self) -> str:
        out = "".join(self._parts)
        return out + TRUNCATED_MARKER if self.truncated else out


async def _drain(stream: asyncio.StreamReader, capture: OutputCapture, on_overflow=None) -> None:
    # keeps reading past the cap so the child never blocks on a full pipe
    while True:
        chunk = await stream.read(8192)
        if not chunk:
            return
        was_truncated = capture.truncated
        capture.feed(chunk)
        if capture.truncated and not was_truncated and on_overflow:
            on_overflow()


def _signal(proc: asyncio.subprocess.Process, sig: int) -> None:
    if proc.returncode is not None:
        return
    try:
        if IS_WINDOWS:
            if sig == signal.SIGTERM:
                proc.terminate()
            else:
                proc.kill()
        else:
            os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass


async def _stop(proc: asyncio.subprocess.Process) -> None:
    """SIGTERM, then SIGKILL once the grace period runs out."""
    _signal(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), KILL_GRACE_SECONDS)
    except asyncio.TimeoutError:
        _signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()


class ShellHandlers:

    def __init__(self, default_timeout_ms: int = 30_000):
        self.default_timeout_ms = default_timeout_ms

    async def bash(self, working_dir: str, input_data: dict) -> ToolResult:
        command = require_str(input_data, "command")
        timeout_ms = clamped_int(input_data, "timeout", self.default_timeout_ms, 1, MAX_TIMEOUT_MS)
        if is_dangerous(command):
            logger.warning("Refused dangerous command", extra={"command": command})
            return ToolResult.error(
                "Refused: this looks like a destructive system command. If you really "
                f"want it, run it yourself in a terminal.\nCommand: {command}"
            )

        try:
            proc = await asyncio.create_subprocess_exec(
                *shell_argv(command),
                cwd=working_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=not IS_WINDOWS,
            )
        except OSError as e:
            return ToolResult.error(f"Command failed to start: {e}")

        stdout = OutputCapture(STDOUT_LIMIT)
        stderr = OutputCapture(STDERR_LIMIT)

        async def run() -> None:
            await asyncio.gather(
                _drain(proc.stdout, stdout, lambda: _signal(proc, signal.SIGTERM)),
                _drain(proc.stderr, stderr),
            )
            await proc.wait()

        timed_out = False
        try:
            await asyncio.wait_for(run(), timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            await _stop(proc)
        finally:
            if proc.returncode is None:
                _signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))

        if timed_out:
            collected = f"{stdout.text}\n{stderr.text}".strip()
            return ToolResult.error(
                f"Command timed out after {timeout_ms / 1000:g}s\n\n"
                f"Collected output:\n{collected}".strip()
            )

        output = stdout.text
        if stderr.text:
            output += ("\n\n" if output else "") + f"stderr:\n{stderr.text}"
        if not output:
            output = "(no output)"
        code = proc.returncode
        if code != 0:
            output += f"\n\nExit code: {code}"
        return ToolResult(output, is_error=code != 0)
