"""
Execution module for the mixin.
Handles terraform process execution and output capture.
"""

from .output_capture import OutputCapture, CaptureResult, trim_trailing_newline
from .runner import CommandRunner, CommandResult, SubprocessRunner

__all__ = [
    "OutputCapture",
    "CaptureResult",
    "trim_trailing_newline",
    "CommandRunner",
    "CommandResult",
    "SubprocessRunner",
]
