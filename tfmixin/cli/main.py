"""Main CLI entry point for the terraform mixin."""

import argparse
import sys
from typing import Optional

from .commands import run_mixin_action, build_command, schema_command, version_command


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging and print the terraform working directory'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Same as --debug'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help='Set log level'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the mixin CLI."""
    parser = argparse.ArgumentParser(
        prog='terraform-mixin',
        description='Run terraform as a bundle step; the step payload is read from STDIN'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    for action in ('install', 'upgrade', 'uninstall', 'invoke'):
        action_parser = subparsers.add_parser(action, help=f'Execute the {action} functionality of this mixin')
        if action == 'invoke':
            action_parser.add_argument(
                '--action',
                required=True,
                help='Custom action name to invoke'
            )
        action_parser.add_argument(
            '--working-dir',
            type=str,
            help='Override the configured terraform working directory'
        )
        action_parser.add_argument(
            '--outputs-dir',
            type=str,
            help='Directory where output files are written'
        )
        _add_logging_arguments(action_parser)

    build_parser = subparsers.add_parser('build', help='Generate Dockerfile lines for the bundle invocation image')
    _add_logging_arguments(build_parser)

    subparsers.add_parser('schema', help='Print the JSON schema for the terraform mixin')

    version_parser = subparsers.add_parser('version', help='Print the mixin version')
    version_parser.add_argument(
        '--output', '-o',
        choices=['plaintext', 'json'],
        default='plaintext',
        help='Output format'
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command in ('install', 'upgrade', 'uninstall', 'invoke'):
        return run_mixin_action(parsed_args)
    elif parsed_args.command == 'build':
        return build_command(parsed_args)
    elif parsed_args.command == 'schema':
        return schema_command(parsed_args)
    elif parsed_args.command == 'version':
        return version_command(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
