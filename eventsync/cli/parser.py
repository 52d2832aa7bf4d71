"""Command line argument parser for EventSync."""

import argparse
from datetime import date, datetime
from pathlib import Path

from .. import __version__

LOG_LEVELS = ["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_date(date_str: str) -> date:
    """Parse a YYYY-MM-DD date for the event date filter.

    Raises:
        argparse.ArgumentTypeError: If the date format is invalid
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD") from err


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--category", help="Category name to filter by ('all' for no filter)")
    parser.add_argument("--date", type=parse_date, help="Only events on this date (YYYY-MM-DD)")


def create_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser.

    Returns:
        Configured ArgumentParser with one subcommand per operation
    """
    parser = argparse.ArgumentParser(
        prog="eventsync",
        description="EventSync - offline-aware events and favorites synchronization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s load                          # Load all events (network, cache fallback)
  %(prog)s load --category music --search jazz
  %(prog)s status                        # Show cache and connectivity status
  %(prog)s login 42                      # Adopt user 42's remote favorites
  %(prog)s favorites toggle 17           # Toggle event 17 as favorite
  %(prog)s favorites sync                # Push local favorites to the server
  %(prog)s watch --duration 60           # Poll for changes for one minute
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}", help="Show version information"
    )
    parser.add_argument("--api-url", help="Events backend base URL")
    parser.add_argument("--data-dir", type=Path, help="Directory holding the local cache database")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging and detailed output"
    )

    logging_group = parser.add_argument_group("logging", "Logging configuration options")
    logging_group.add_argument("--log-level", choices=LOG_LEVELS, help="Set both console and file log levels")
    logging_group.add_argument(
        "--quiet", "-q", action="store_true", help="Only show errors on console"
    )
    logging_group.add_argument("--log-dir", type=Path, help="Write log files to this directory")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    load_parser = subparsers.add_parser("load", help="Load categories and events")
    _add_filter_arguments(load_parser)
    load_parser.add_argument("--search", default="", help="Free-text search on the loaded events")
    load_parser.add_argument(
        "--favorites-only", action="store_true", help="Only show favorite events"
    )
    load_parser.add_argument("--offline", action="store_true", help="Serve from the cache only")

    subparsers.add_parser("status", help="Show cache, connectivity and session status")

    venues_parser = subparsers.add_parser("venues", help="Load venues")
    venues_parser.add_argument("--category-id", type=int, help="Venue category id")
    venues_parser.add_argument("--search", default="", help="Free-text search on the loaded venues")

    login_parser = subparsers.add_parser("login", help="Remember a user and adopt their remote favorites")
    login_parser.add_argument("user_id", type=int, help="User id")
    login_parser.add_argument("--name", help="Display name")
    login_parser.add_argument("--email", help="E-mail address")

    subparsers.add_parser("logout", help="Forget the user and the local favorites")

    favorites_parser = subparsers.add_parser("favorites", help="Manage favorite events")
    favorites_actions = favorites_parser.add_subparsers(dest="favorites_command", metavar="ACTION")
    favorites_actions.required = True
    favorites_actions.add_parser("list", help="List local favorites")
    toggle_parser = favorites_actions.add_parser("toggle", help="Toggle an event as favorite")
    toggle_parser.add_argument("event_id", type=int, help="Event id")
    favorites_actions.add_parser("sync", help="Push local favorites to the server")

    watch_parser = subparsers.add_parser("watch", help="Load events and poll for remote changes")
    _add_filter_arguments(watch_parser)
    watch_parser.add_argument("--interval", type=float, help="Seconds between change checks")
    watch_parser.add_argument(
        "--duration", type=float, help="Stop after this many seconds (default: run until interrupted)"
    )

    subparsers.add_parser("clear-cache", help="Drop cached snapshots")

    return parser


__all__ = [
    "create_parser",
    "parse_date",
]
