"""
Output capture for terraform steps.

Each declared output is read with `terraform output -raw NAME` and written
to a file named after the output, where the host orchestrator collects it.
Outputs are processed in declaration order; the first failure stops the
loop and is returned, never raised.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..context import ExecutionContext
from ..model import Output
from .runner import CommandResult, CommandRunner, command_error

logger = logging.getLogger(__name__)

TERRAFORM = "terraform"


@dataclass
class CaptureResult:
    """Outcome of capturing a step's outputs."""
    captured: List[str] = field(default_factory=list)
    failed_output: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def trim_trailing_newline(value: bytes) -> bytes:
    """Drop the single newline terraform appends to raw outputs."""
    if value.endswith(b"\n"):
        return value[:-1]
    return value


class OutputCapture:
    """Retrieves terraform outputs and persists them for the host."""

    def __init__(self, runner: CommandRunner, outputs_dir: Path):
        """
        Args:
            runner: Command runner used for `terraform output`
            outputs_dir: Directory the host reads output files from
        """
        self.runner = runner
        self.outputs_dir = Path(outputs_dir)

    def get_output(self, context: ExecutionContext, name: str) -> CommandResult:
        """Run `terraform output -raw NAME`; returns the CommandResult with trimmed stdout."""
        result = self.runner.run([TERRAFORM, "output", "-raw", name], context.cwd, context.env)
        if result.ok:
            result.stdout = trim_trailing_newline(result.stdout)
        return result

    def write_output(self, name: str, value: bytes) -> Optional[Dict[str, Any]]:
        """Persist one output value; returns an error dict on failure."""
        try:
            self.outputs_dir.mkdir(parents=True, exist_ok=True)
            (self.outputs_dir / name).write_bytes(value)
        except (OSError, ValueError) as e:
            return {
                "type": "output_write_error",
                "message": f"unable to write output '{name}': {e}",
                "context": {"output": name, "outputs_dir": str(self.outputs_dir)},
            }
        return None

    def handle_outputs(self, context: ExecutionContext, outputs: Sequence[Output]) -> CaptureResult:
        """
        Capture every declared output in order.

        Returns:
            CaptureResult listing the outputs written; on failure `error`
            names the failing output and later outputs were not attempted
        """
        capture = CaptureResult()
        for output in outputs:
            result = self.get_output(context, output.name)
            if not result.ok:
                error = dict(result.error or command_error(
                    result.argv, f"exit status {result.exit_code}", result.tool_path, result.exit_code))
                error["context"] = {**error.get("context", {}), "output": output.name}
                capture.failed_output = output.name
                capture.error = error
                return capture

            error = self.write_output(output.name, result.stdout)
            if error:
                capture.failed_output = output.name
                capture.error = error
                return capture

            logger.debug(f"Captured output '{output.name}' ({len(result.stdout)} bytes)")
            capture.captured.append(output.name)

        return capture
