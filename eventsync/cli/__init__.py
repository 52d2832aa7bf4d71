"""Command line interface for EventSync."""

import asyncio
import logging
import sys
from typing import Optional

from ..config.settings import EventSyncSettings, get_settings
from ..utils.logging import apply_command_line_overrides, setup_logging
from .commands import COMMANDS, run_command
from .parser import create_parser, parse_date

logger = logging.getLogger(__name__)


def apply_cli_overrides(settings: EventSyncSettings, args: object) -> EventSyncSettings:
    """Apply connection and storage overrides from the command line."""
    if getattr(args, "api_url", None):
        settings.api_base_url = args.api_url  # type: ignore[attr-defined]
    if getattr(args, "data_dir", None):
        settings.data_dir = args.data_dir  # type: ignore[attr-defined]
    if getattr(args, "interval", None):
        settings.poll_interval = args.interval  # type: ignore[attr-defined]
    return apply_command_line_overrides(settings, args)


async def main_entry(argv: Optional[list[str]] = None) -> int:
    """Main entry point with argument parsing.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = apply_cli_overrides(get_settings(), args)
    setup_logging(settings)

    try:
        return await run_command(settings, args)
    except Exception:
        logger.exception(f"Command '{args.command}' failed")
        return 1


def main() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main_entry()))
    except KeyboardInterrupt:
        print("Operation cancelled by user")
        sys.exit(130)


__all__ = [
    "COMMANDS",
    "apply_cli_overrides",
    "create_parser",
    "main",
    "main_entry",
    "parse_date",
]
