"""
Command runner for terraform invocations.

Runs one external command synchronously, captures stdout as bytes and
streams stderr through to the caller's error stream while it runs.
No timeout and no retries: a failing terraform call reflects a real
configuration problem.
"""

import logging
import shutil
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Deque, Dict, IO, List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of one external command."""
    argv: List[str]
    exit_code: int
    stdout: bytes = b""
    stderr_tail: str = ""
    tool_path: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0


def format_command_line(argv: List[str], tool_path: Optional[str] = None) -> str:
    path = tool_path or argv[0]
    return " ".join([path] + list(argv[1:]))


def command_error(argv: List[str], cause: str, tool_path: Optional[str] = None, exit_code: Optional[int] = None) -> Dict[str, Any]:
    """Build an execution error dict that embeds the full command line."""
    command_line = format_command_line(argv, tool_path)
    return {
        "type": "execution_error",
        "message": f"couldn't run command {command_line}: {cause}",
        "context": {"command": command_line, "exit_code": exit_code},
    }


class CommandRunner(Protocol):
    """Capability to run a command and capture its stdout."""

    def run(self, argv: List[str], cwd: Path, env: Dict[str, str]) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands with subprocess, streaming stderr to `stderr`."""

    STDERR_TAIL_LINES = 20

    def __init__(self, stderr: IO):
        self.stderr = stderr

    def run(self, argv: List[str], cwd: Path, env: Dict[str, str]) -> CommandResult:
        tool_path = shutil.which(argv[0], path=env.get("PATH")) or argv[0]
        logger.debug(f"Running: {format_command_line(argv, tool_path)} (cwd={cwd})")

        try:
            process = subprocess.Popen(
                [tool_path] + list(argv[1:]),
                cwd=str(cwd),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            # ValueError: an argument carries an embedded NUL byte
            return CommandResult(
                argv=list(argv),
                exit_code=127,
                tool_path=tool_path,
                error=command_error(argv, str(e), tool_path),
            )

        tail: Deque[str] = deque(maxlen=self.STDERR_TAIL_LINES)
        pump = threading.Thread(target=self._pump_stderr, args=(process.stderr, tail), daemon=True)
        pump.start()

        stdout = process.stdout.read()
        process.stdout.close()
        exit_code = process.wait()
        pump.join()

        stderr_tail = "".join(tail).strip()
        error = None
        if exit_code != 0:
            cause = f"exit status {exit_code}"
            if stderr_tail:
                cause = f"{cause}: {stderr_tail}"
            error = command_error(argv, cause, tool_path, exit_code)

        return CommandResult(
            argv=list(argv),
            exit_code=exit_code,
            stdout=stdout,
            stderr_tail=stderr_tail,
            tool_path=tool_path,
            error=error,
        )

    def _pump_stderr(self, pipe: IO[bytes], tail: Deque[str]) -> None:
        for raw_line in iter(pipe.readline, b""):
            line = raw_line.decode("utf-8", errors="replace")
            tail.append(line)
            self.stderr.write(line)
            self.stderr.flush()
        pipe.close()
