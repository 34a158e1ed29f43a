"""CLI entry point."""

import argparse
import os
import sys

from common.logging_config import setup_logging
from cli.commands import dispatch_command, set_server_url
from cli.constants import HELP_TEXT
from cli.parser import ParseError, parse_command
from cli.repl import repl_loop


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m cli.main",
        description="Client for a LAN file share server",
        epilog=HELP_TEXT,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--server', help='Server URL (default: SHARE_SERVER_URL or network discovery)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('command', nargs=argparse.REMAINDER, help='Command to run; starts a REPL when omitted')
    return parser


def main(argv=None) -> int:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)
    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('cli', log_level=log_level)
    if args.debug:
        logger.info("Debug logging enabled")

    if args.server:
        set_server_url(args.server)

    if not args.command:
        try:
            repl_loop()
        except Exception as e:
            logger.error(f"CLI error: {e}", exc_info=True)
            raise
        return 0

    try:
        cmd_obj = parse_command(args.command)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = dispatch_command(cmd_obj)
    print(result)
    return 1 if result.startswith(("Error", "Upload failed")) else 0


if __name__ == "__main__":
    sys.exit(main())
