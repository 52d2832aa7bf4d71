"""Command implementations for the EventSync CLI."""

import asyncio
import logging
from typing import Any

from ..api.models import Event, EventFilter, User
from ..config.settings import EventSyncSettings
from ..sync.models import ViewModel
from ..sync.session import SyncSession
from ..sync.view_filter import filter_events, filter_venues

logger = logging.getLogger(__name__)


def _filter_from_args(args: Any) -> EventFilter:
    return EventFilter(category=getattr(args, "category", None), date=getattr(args, "date", None))


def _format_event(event: Event, favorites: frozenset[int]) -> str:
    marker = "*" if event.id in favorites else " "
    featured = " [featured]" if event.is_featured else ""
    location = f" @ {event.location}" if event.location else ""
    return f" {marker} {event.id:>5}  {event.start_date:%Y-%m-%d}  {event.title}{location}{featured}"


def _print_view(view: ViewModel, events: list[Event], favorites: frozenset[int]) -> None:
    if view.no_data_available:
        print("No data available: the server is unreachable and nothing is cached yet.")
        return

    source = "cache (offline)" if view.using_cached_data else "server"
    print(f"{len(events)} event(s), {len(view.categories)} categories from {source} [{view.filter}]")
    for event in events:
        print(_format_event(event, favorites))


async def run_load(session: SyncSession, args: Any) -> int:
    if args.offline:
        session.connectivity.set_online(False)

    result = await session.show_events(_filter_from_args(args))
    session.leave_view()

    favorites = session.favorites.favorites
    events = filter_events(
        result.events,
        query=args.search,
        favorites=favorites,
        favorites_only=args.favorites_only,
    )
    _print_view(session.orchestrator.view, events, favorites)
    return 1 if result.no_data_available else 0


async def run_venues(session: SyncSession, args: Any) -> int:
    result = await session.show_venues(args.category_id)
    session.leave_view()

    if result.failed:
        print(f"Venues unavailable: {result.error}")
        return 1

    venues = filter_venues(result.venues, args.search)
    print(f"{len(venues)} venue(s)")
    for venue in venues:
        category = f" ({venue.category.display_name})" if venue.category else ""
        print(f"   {venue.id:>5}  {venue.name}{category} - {venue.address}")
    return 0


async def run_status(session: SyncSession, args: Any) -> int:  # noqa: ARG001
    status = await session.status()
    cache = status["cache"]

    print("EventSync status")
    print(f"  Connectivity:   {status['connectivity']}"
          + ("" if status["connectivity_signal"] else " (no signal, assumed)"))
    print(f"  User:           {status['user_id'] or 'anonymous'}")
    print(f"  Favorites:      {len(status['favorites'])}")
    print(f"  Cached events:  {cache['event_count']}")
    print(f"  Cached cats:    {cache['category_count']}")
    print(f"  Last sync:      {cache['last_sync_at'] or 'never'}")
    print(f"  Stale:          {cache['is_stale']} (threshold {cache['staleness_threshold_seconds']}s)")
    return 0


async def run_login(session: SyncSession, args: Any) -> int:
    await session.login(User(id=args.user_id, name=args.name, email=args.email))
    print(f"Logged in as user {args.user_id} ({len(session.favorites.favorites)} favorites)")
    return 0


async def run_logout(session: SyncSession, args: Any) -> int:  # noqa: ARG001
    await session.logout()
    print("Logged out")
    return 0


async def run_favorites(session: SyncSession, args: Any) -> int:
    if args.favorites_command == "list":
        favorites = sorted(session.favorites.favorites)
        print(", ".join(str(event_id) for event_id in favorites) if favorites else "No favorites")
        return 0

    if args.favorites_command == "toggle":
        is_favorite = await session.toggle_favorite(args.event_id)
        await session.wait_for_background_tasks()
        print(f"Event {args.event_id} {'added to' if is_favorite else 'removed from'} favorites")
        return 0

    report = await session.sync_favorites()
    if report is None:
        print("Not logged in; favorites are kept locally only")
        return 1
    if report.remote_unavailable:
        print("Server unreachable; favorites will be pushed on the next sync")
        return 1

    print(f"Pushed {len(report.to_add)} addition(s) and {len(report.to_remove)} removal(s)")
    if not report.succeeded:
        print(f"  {len(report.failed_add) + len(report.failed_remove)} change(s) will be retried")
        return 1
    return 0


async def run_watch(session: SyncSession, args: Any) -> int:
    def on_view(view: ViewModel) -> None:
        source = "cache" if view.using_cached_data else "server"
        print(f"[{view.filter}] {len(view.events)} event(s) from {source}")

    remove_listener = session.orchestrator.add_view_listener(on_view)
    try:
        await session.show_events(_filter_from_args(args))
        print(f"Watching for changes every {session.settings.poll_interval}s (Ctrl+C to stop)")
        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        remove_listener()
        session.leave_view()
    return 0


async def run_clear_cache(session: SyncSession, args: Any) -> int:  # noqa: ARG001
    await session.cache.clear_cache()
    print("Cache cleared")
    return 0


COMMANDS = {
    "load": run_load,
    "venues": run_venues,
    "status": run_status,
    "login": run_login,
    "logout": run_logout,
    "favorites": run_favorites,
    "watch": run_watch,
    "clear-cache": run_clear_cache,
}


async def run_command(settings: EventSyncSettings, args: Any) -> int:
    """Run one CLI command inside a sync session.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    handler = COMMANDS[args.command]
    async with SyncSession(settings, auto_start=args.command == "watch") as session:
        return await handler(session, args)
