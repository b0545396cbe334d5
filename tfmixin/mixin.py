"""
Terraform mixin: pre-run setup, action dispatch and output capture.

Each invocation walks the stages START -> PAYLOAD_READ -> PARSED ->
PRE_RUN_DONE -> ACTION_EXECUTED -> OUTPUTS_CAPTURED. Any stage may end
in FAILED, which is terminal; nothing is retried or rolled back.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import MixinConfig
from .context import ExecutionContext
from .exceptions import PayloadError, StepValidationError
from .exec.output_capture import OutputCapture, TERRAFORM
from .exec.runner import CommandResult, CommandRunner, SubprocessRunner, command_error
from .loader import StepLoader, read_payload
from .model import Action, ActionPayload, Step

logger = logging.getLogger(__name__)

TF_LOG_ENV = "TF_LOG"


class Stage(str, Enum):
    """Invocation stages."""
    START = "start"
    PAYLOAD_READ = "payload_read"
    PARSED = "parsed"
    PRE_RUN_DONE = "pre_run_done"
    ACTION_EXECUTED = "action_executed"
    OUTPUTS_CAPTURED = "outputs_captured"
    FAILED = "failed"


@dataclass
class ActionResult:
    """Result of running one action."""
    action: str
    stage: Stage
    exit_code: int = 0
    outputs: List[str] = field(default_factory=list)
    failed_stage: Optional[Stage] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.stage == Stage.OUTPUTS_CAPTURED

    def fail(self, error: Dict[str, Any], exit_code: int = 1) -> "ActionResult":
        self.failed_stage = self.stage
        self.stage = Stage.FAILED
        self.exit_code = exit_code
        self.error = error
        return self

    def to_state_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "action": self.action,
            "stage": self.stage.value,
            "exit_code": self.exit_code,
            "outputs": self.outputs,
        }
        if self.error:
            result["failed_stage"] = self.failed_stage.value if self.failed_stage else None
            result["error"] = self.error
        return result


class TerraformMixin:
    """
    Runs terraform for the steps of one action.
    Process state (env, cwd) lives on the ExecutionContext.
    """

    def __init__(
        self,
        config: Optional[MixinConfig] = None,
        context: Optional[ExecutionContext] = None,
        runner: Optional[CommandRunner] = None,
    ):
        """
        Args:
            config: Mixin defaults (working dir, client version, outputs dir)
            context: Execution context (default: current process env and cwd)
            runner: Command runner (default: SubprocessRunner on context.stderr)
        """
        self.config = config or MixinConfig()
        self.context = context or ExecutionContext()
        self.runner = runner or SubprocessRunner(self.context.stderr)
        self.output_capture = OutputCapture(self.runner, Path(self.config.outputs_dir))
        # Step working dirs resolve against the directory the mixin started in
        self.base_dir = self.context.getwd()

    def _run(self, argv: List[str]) -> CommandResult:
        result = self.runner.run(argv, self.context.cwd, self.context.env)
        if result.exit_code != 0 and result.error is None:
            result.error = command_error(argv, f"exit status {result.exit_code}", result.tool_path, result.exit_code)
        return result

    def init(self, backend_config: Dict[str, str]) -> CommandResult:
        """Run `terraform init` with the step's backend configuration."""
        argv = [TERRAFORM, "init", "-backend=true"]
        for key in sorted(backend_config):
            argv.append(f"-backend-config={key}={backend_config[key]}")
        argv.append("-reconfigure")
        return self._run(argv)

    def command_pre_run(self, step: Step) -> Optional[Dict[str, Any]]:
        """
        Setup shared by every action: TF_LOG, working dir, then init.

        Returns:
            An init_error dict if initialization failed, else None
        """
        if step.log_level:
            self.context.setenv(TF_LOG_ENV, step.log_level)

        self.context.chdir(str(self.base_dir / (step.working_dir or self.config.working_dir)))
        if self.context.debug:
            print(f"Terraform working directory is {self.context.getwd()}", file=self.context.stderr)

        print("Initializing Terraform...", file=self.context.stdout)
        result = self.init(step.backend_config)
        if not result.ok:
            cause = result.error["message"]
            return {
                "type": "init_error",
                "message": f"could not init terraform, {cause}",
                "context": result.error.get("context", {}),
            }
        return None

    def build_command(self, action: str, step: Step) -> List[str]:
        """Build the action-specific terraform command line."""
        if action in (Action.INSTALL.value, Action.UPGRADE.value):
            argv = [TERRAFORM, "apply", "-auto-approve"]
        elif action == Action.UNINSTALL.value:
            argv = [TERRAFORM, "destroy", "-auto-approve"]
        else:
            argv = [TERRAFORM] + list(step.arguments or (action,))
            for name in sorted(step.flags):
                value = step.flags[name]
                argv.append(f"-{name}" if value is None else f"-{name}={value}")
            return argv

        argv.append("-input=true" if step.input else "-input=false")
        for key in sorted(step.vars):
            argv.extend(["-var", f"{key}={step.vars[key]}"])
        return argv

    def execute_step(self, action: str, step: Step, result: ActionResult) -> ActionResult:
        """Run one step; advances `result` through the stages."""
        if step.description:
            logger.info(f"{action}: {step.description}")

        error = self.command_pre_run(step)
        if error:
            return result.fail(error)
        result.stage = Stage.PRE_RUN_DONE

        command = self._run(self.build_command(action, step))
        if command.stdout:
            self.context.stdout.write(command.stdout.decode("utf-8", errors="replace"))
            self.context.stdout.flush()
        if not command.ok:
            return result.fail(command.error)
        result.stage = Stage.ACTION_EXECUTED

        capture = self.output_capture.handle_outputs(self.context, step.outputs)
        result.outputs.extend(capture.captured)
        if not capture.ok:
            return result.fail(capture.error)
        result.stage = Stage.OUTPUTS_CAPTURED
        return result

    def execute(self, payload: ActionPayload) -> ActionResult:
        """Run every step of the action in order; stops at the first failure."""
        result = ActionResult(action=payload.action, stage=Stage.PARSED)
        for step in payload.steps:
            result.stage = Stage.PARSED
            self.execute_step(payload.action, step, result)
            if not result.ok:
                return result
        return result


def run_action(
    action: str,
    context: Optional[ExecutionContext] = None,
    runner: Optional[CommandRunner] = None,
    **config_overrides: Optional[str],
) -> ActionResult:
    """
    Read the payload from context.stdin and run `action`.

    Payload and validation problems come back as a FAILED result with
    exit code 2; terraform failures use exit code 1.
    """
    context = context or ExecutionContext()
    result = ActionResult(action=action, stage=Stage.START)

    try:
        data = read_payload(context.stdin)
    except PayloadError as e:
        return result.fail({"type": "payload_error", "message": str(e), "context": {}}, e.exit_code)
    result.stage = Stage.PAYLOAD_READ

    loader = StepLoader()
    try:
        document = loader.parse(data)
        config = loader.load_config(document).with_overrides(**config_overrides)
        payload = loader.load_document(document, action)
    except StepValidationError as e:
        return result.fail(
            {
                "type": "validation_error",
                "message": str(e),
                "context": {"errors": [{"message": err.message, "path": err.path} for err in e.errors]},
            },
            e.exit_code,
        )

    mixin = TerraformMixin(config=config, context=context, runner=runner)
    return mixin.execute(payload)
