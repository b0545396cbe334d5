"""
Tests for pre-run setup: TF_LOG export, working directory change and
terraform init, in that order.
"""

import os

from tfmixin.config import MixinConfig
from tfmixin.mixin import TerraformMixin, TF_LOG_ENV
from tfmixin.model import Step

from tests.conftest import FakeRunner


def _mixin(context, runner, **config):
    return TerraformMixin(config=MixinConfig(**config), context=context, runner=runner)


class TestCommandPreRun:
    """Environment, working directory and init, in that order."""

    def test_log_level_exported_before_init(self, context):
        """logLevel is exported as TF_LOG before init runs."""
        runner = FakeRunner()
        mixin = _mixin(context, runner)

        error = mixin.command_pre_run(Step(log_level="DEBUG"))

        assert error is None
        init_call = runner.calls[0]
        assert init_call.argv[1] == "init"
        assert init_call.env[TF_LOG_ENV] == "DEBUG"
        assert context.env[TF_LOG_ENV] == "DEBUG"

    def test_empty_log_level_leaves_env_untouched(self, context):
        """An empty logLevel keeps an inherited TF_LOG."""
        context.env[TF_LOG_ENV] = "WARN"
        runner = FakeRunner()
        mixin = _mixin(context, runner)

        mixin.command_pre_run(Step(log_level=""))

        assert context.env[TF_LOG_ENV] == "WARN"
        assert runner.calls[0].env[TF_LOG_ENV] == "WARN"

    def test_unset_log_level_not_added(self, context):
        """No logLevel means no TF_LOG in the env."""
        runner = FakeRunner()
        mixin = _mixin(context, runner)

        mixin.command_pre_run(Step())

        assert TF_LOG_ENV not in runner.calls[0].env

    def test_process_environment_not_modified(self, context, monkeypatch):
        """Only the context env changes, never os.environ."""
        monkeypatch.delenv(TF_LOG_ENV, raising=False)
        mixin = _mixin(context, FakeRunner())

        mixin.command_pre_run(Step(log_level="TRACE"))

        assert TF_LOG_ENV not in os.environ

    def test_changes_to_configured_working_dir(self, context):
        """Without a step override the configured dir is used."""
        runner = FakeRunner()
        base = context.cwd
        mixin = _mixin(context, runner, working_dir="terraform")

        mixin.command_pre_run(Step())

        assert context.cwd == (base / "terraform").resolve()
        assert runner.calls[0].cwd == context.cwd

    def test_step_working_dir_overrides_config(self, context):
        """A step workingDir wins over the config."""
        runner = FakeRunner()
        base = context.cwd
        mixin = _mixin(context, runner, working_dir="terraform")

        mixin.command_pre_run(Step(working_dir="infra"))

        assert runner.calls[0].cwd == (base / "infra").resolve()

    def test_repeated_pre_run_does_not_nest_directories(self, context):
        """Relative dirs resolve from the start dir on every step."""
        runner = FakeRunner()
        base = context.cwd
        mixin = _mixin(context, runner, working_dir="terraform")

        mixin.command_pre_run(Step())
        mixin.command_pre_run(Step())

        assert runner.calls[1].cwd == (base / "terraform").resolve()

    def test_debug_prints_working_dir(self, context):
        """Debug mode reports the working directory on stderr."""
        context.debug = True
        mixin = _mixin(context, FakeRunner(), working_dir="infra")

        mixin.command_pre_run(Step())

        assert "Terraform working directory is" in context.stderr.getvalue()
        assert str(context.cwd) in context.stderr.getvalue()

    def test_working_dir_silent_without_debug(self, context):
        """The working directory line is debug only."""
        mixin = _mixin(context, FakeRunner())

        mixin.command_pre_run(Step())

        assert "Terraform working directory" not in context.stderr.getvalue()

    def test_init_announced_on_stdout(self, context):
        """Init is announced on stdout."""
        mixin = _mixin(context, FakeRunner())

        mixin.command_pre_run(Step())

        assert "Initializing Terraform..." in context.stdout.getvalue()

    def test_init_passes_backend_config(self, context):
        """backendConfig becomes sorted -backend-config pairs."""
        runner = FakeRunner()
        mixin = _mixin(context, runner)

        mixin.command_pre_run(Step(backend_config={"key": "app.tfstate", "bucket": "state"}))

        assert runner.calls[0].argv == [
            "terraform", "init", "-backend=true",
            "-backend-config=bucket=state",
            "-backend-config=key=app.tfstate",
            "-reconfigure",
        ]

    def test_init_failure_wrapped(self, context):
        """Init failures keep terraform's stderr in the message."""
        runner = FakeRunner(failures={"init": "backend error"})
        mixin = _mixin(context, runner)

        error = mixin.command_pre_run(Step())

        assert error["type"] == "init_error"
        assert error["message"].startswith("could not init terraform, ")
        assert "backend error" in error["message"]
