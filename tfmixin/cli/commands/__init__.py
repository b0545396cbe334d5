"""CLI command handlers."""

from .action import run_mixin_action, setup_logging
from .info import build_command, schema_command, version_command

__all__ = ['run_mixin_action', 'setup_logging', 'build_command', 'schema_command', 'version_command']
