"""install/upgrade/invoke/uninstall command implementation."""

import logging
import sys
from argparse import Namespace

from tfmixin.context import ExecutionContext
from tfmixin.mixin import run_action
from tfmixin.model import Action


logger = logging.getLogger(__name__)

BUILTIN_ACTIONS = {Action.INSTALL.value, Action.UPGRADE.value, Action.UNINSTALL.value}


def setup_logging(args: Namespace) -> None:
    """Configure root logging from the common CLI flags."""
    log_level = getattr(logging, getattr(args, 'log_level', 'info').upper())
    if getattr(args, 'debug', False):
        log_level = logging.DEBUG
    elif getattr(args, 'quiet', False):
        log_level = logging.ERROR
    elif getattr(args, 'verbose', False):
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )


def run_mixin_action(args: Namespace) -> int:
    """
    Run an action with the step payload from STDIN.

    Exit codes: 0 success, 1 terraform failure, 2 unreadable or invalid payload.
    """
    setup_logging(args)

    if args.command == Action.INVOKE.value:
        action = args.action
        if action in BUILTIN_ACTIONS:
            logger.error(f"'{action}' is a built-in action, run it with the {action} command instead of invoke")
            return 2
    else:
        action = args.command
    context = ExecutionContext(debug=args.debug or args.verbose)

    try:
        result = run_action(
            action,
            context=context,
            working_dir=args.working_dir,
            outputs_dir=args.outputs_dir,
        )
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    if not result.ok:
        if result.error and result.error.get("type") == "validation_error":
            for error in result.error["context"]["errors"]:
                where = f" at {error['path']}" if error['path'] else ""
                logger.error(f"Validation error{where}: {error['message']}")
        else:
            logger.error(f"{action} failed: {result.error['message']}")
        return result.exit_code

    if result.outputs:
        logger.info(f"Captured outputs: {', '.join(result.outputs)}")
    return 0
