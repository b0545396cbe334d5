"""build, schema and version commands."""

import json
import logging
import sys
from argparse import Namespace

from tfmixin import __version__
from tfmixin.exceptions import PayloadError, StepValidationError
from tfmixin.build import render_dockerfile
from tfmixin.loader import StepLoader, read_payload
from tfmixin.schema import load_schema_text

from .action import setup_logging

logger = logging.getLogger(__name__)

MIXIN_NAME = "terraform"


def build_command(args: Namespace) -> int:
    """Print Dockerfile lines using the `config:` block of the payload on STDIN."""
    setup_logging(args)
    loader = StepLoader()
    try:
        data = read_payload(sys.stdin)
        config = loader.load_config(loader.parse(data)) if data.strip() else loader.load_config({})
    except PayloadError as e:
        logger.error(str(e))
        return e.exit_code
    except StepValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}")
        return e.exit_code

    sys.stdout.write(render_dockerfile(config))
    return 0


def schema_command(args: Namespace) -> int:
    sys.stdout.write(load_schema_text())
    return 0


def version_command(args: Namespace) -> int:
    if args.output == 'json':
        print(json.dumps({"name": MIXIN_NAME, "version": __version__}, indent=2))
    else:
        print(f"{MIXIN_NAME} mixin v{__version__}")
    return 0
