"""
Step model for the terraform mixin.

A Step is one requested action parsed from the payload on stdin.
Steps are frozen after parsing and discarded when the process exits.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Action(str, Enum):
    """Actions the host orchestrator can ask the mixin to run."""
    INSTALL = "install"
    UPGRADE = "upgrade"
    INVOKE = "invoke"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class Output:
    """A named terraform output the bundle expects back."""
    name: str


@dataclass(frozen=True)
class Step:
    """
    One terraform step.

    Attributes:
        description: Human readable summary shown by the host
        log_level: Value exported as TF_LOG (empty leaves TF_LOG alone)
        backend_config: Passed to `terraform init` as -backend-config pairs
        working_dir: Overrides the configured working directory
        input: Whether terraform may prompt for input
        vars: Passed to apply/destroy as -var pairs
        arguments: Subcommand and positional args (invoke only)
        flags: Extra -flag=value options (invoke only)
        outputs: Outputs to capture, in declaration order
    """
    description: str = ""
    log_level: str = ""
    backend_config: Dict[str, str] = field(default_factory=dict)
    working_dir: Optional[str] = None
    input: bool = False
    vars: Dict[str, str] = field(default_factory=dict)
    arguments: Tuple[str, ...] = ()
    flags: Dict[str, Optional[str]] = field(default_factory=dict)
    outputs: Tuple[Output, ...] = ()

    @property
    def output_names(self) -> List[str]:
        return [output.name for output in self.outputs]


@dataclass(frozen=True)
class ActionPayload:
    """All steps the host sent for a single action."""
    action: str
    steps: Tuple[Step, ...]
