"""Bash tool tests: real subprocesses in tmp_path.

Invariants:
    - The command runs with the working directory as cwd
    - A non-zero exit code makes the result an error and is reported
    - Timeouts stop the process and report what was collected
    - Destructive commands are refused before a process starts
"""

import pytest

from agentweb.core.errors import ToolValidationError
from agentweb.services.handle_shell import IS_WINDOWS, OutputCapture, ShellHandlers, is_dangerous

pytestmark = pytest.mark.skipif(IS_WINDOWS, reason="POSIX shell commands")


@pytest.fixture
def shell():
    return ShellHandlers(default_timeout_ms=5_000)


async def test_echo(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "echo hello"})
    assert not result.is_error
    assert result.content == "hello\n"


async def test_runs_in_working_dir(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "pwd -P"})
    assert result.content.strip() == str(tmp_path.resolve())


async def test_exit_code_is_error(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "exit 3"})
    assert result.is_error
    assert result.content == "(no output)\n\nExit code: 3"


async def test_stderr_is_reported(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "echo out; echo oops >&2"})
    assert result.content == "out\n\n\nstderr:\noops\n"


async def test_timeout_stops_process(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "echo started; sleep 10", "timeout": 300})
    assert result.is_error
    assert result.content.startswith("Command timed out after 0.3s")
    assert "started" in result.content


async def test_dangerous_command_is_refused(shell, tmp_path):
    result = await shell.bash(str(tmp_path), {"command": "rm -rf / --no-preserve-root"})
    assert result.is_error
    assert result.content.startswith("Refused")


async def test_command_required(shell, tmp_path):
    with pytest.raises(ToolValidationError):
        await shell.bash(str(tmp_path), {"command": ""})


def test_dangerous_patterns():
    assert is_dangerous("sudo rm -rf ~/")
    assert is_dangerous("dd if=/dev/zero of=/dev/sda")
    assert is_dangerous("mkfs.ext4 /dev/sdb1")
    assert not is_dangerous("rm -rf build/")
    assert not is_dangerous("ls -la")


def test_output_capture_truncates_and_keeps_split_utf8():
    capture = OutputCapture(limit=3)
    data = "é".encode()
    capture.feed(data[:1])
    capture.feed(data[1:] + b"abcdef")
    assert capture.truncated
    assert capture.text == "éab\n... (output truncated)"
