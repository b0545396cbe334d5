"""Shared fixtures: a fake command runner and an isolated execution context."""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from tfmixin.context import ExecutionContext
from tfmixin.exec.runner import CommandResult, command_error


@dataclass
class RecordedCall:
    argv: List[str]
    cwd: Path
    env: Dict[str, str]


class FakeRunner:
    """
    Stands in for terraform.

    Args:
        outputs: Raw stdout returned by `terraform output -raw NAME`
        failures: Subcommand (e.g. 'init') or 'output:NAME' mapped to stderr text
        stdout: Stdout returned by subcommands other than `output`
    """

    def __init__(
        self,
        outputs: Optional[Dict[str, bytes]] = None,
        failures: Optional[Dict[str, str]] = None,
        stdout: Optional[Dict[str, bytes]] = None,
    ):
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.stdout = stdout or {}
        self.calls: List[RecordedCall] = []

    def run(self, argv, cwd, env):
        self.calls.append(RecordedCall(argv=list(argv), cwd=cwd, env=dict(env)))
        subcommand = argv[1] if len(argv) > 1 else ""
        key = f"output:{argv[-1]}" if subcommand == "output" else subcommand

        if key in self.failures:
            stderr = self.failures[key]
            return CommandResult(
                argv=list(argv),
                exit_code=1,
                stderr_tail=stderr,
                error=command_error(argv, f"exit status 1: {stderr}", exit_code=1),
            )

        if subcommand == "output":
            name = argv[-1]
            if name not in self.outputs:
                stderr = f'Output "{name}" not found'
                return CommandResult(
                    argv=list(argv),
                    exit_code=1,
                    stderr_tail=stderr,
                    error=command_error(argv, f"exit status 1: {stderr}", exit_code=1),
                )
            return CommandResult(argv=list(argv), exit_code=0, stdout=self.outputs[name])

        return CommandResult(argv=list(argv), exit_code=0, stdout=self.stdout.get(subcommand, b""))

    @property
    def subcommands(self) -> List[str]:
        return [call.argv[1] for call in self.calls]

    @property
    def retrieved_outputs(self) -> List[str]:
        return [call.argv[-1] for call in self.calls if call.argv[1] == "output"]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def context(tmp_path):
    """Execution context with in-memory streams rooted at tmp_path."""
    return ExecutionContext(
        env={"PATH": "/usr/bin:/bin"},
        cwd=tmp_path.resolve(),
        stdin=io.StringIO(""),
        stdout=io.StringIO(),
        stderr=io.StringIO(),
    )


@pytest.fixture
def outputs_dir(tmp_path):
    return tmp_path / "outputs"
