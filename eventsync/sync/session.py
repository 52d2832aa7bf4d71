"""Session context wiring the synchronization components together."""

import asyncio
import logging
from collections.abc import Coroutine
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..api.client import EventsApiClient
from ..api.models import EventFilter, User
from ..cache.database import USER_KEY, DatabaseManager
from ..cache.manager import LocalCacheStore
from ..connectivity.monitor import ConnectivityChange, ConnectivityMonitor
from ..connectivity.probe import ConnectivityProbe
from .favorites import FavoritesReconciler, SyncReport
from .models import LoadResult, VenueLoadResult
from .orchestrator import DataLoadOrchestrator
from .poller import ChangeDetectionPoller

logger = logging.getLogger(__name__)


class ActiveView(str, Enum):
    """Listing currently shown to the user."""

    NONE = "none"
    EVENTS = "events"
    VENUES = "venues"


class SyncSession:
    """Process-wide synchronization state with an explicit lifecycle.

    Owns the database, cache store, connectivity monitor and probe, API
    client, load orchestrator, favorites reconciler and the two change
    pollers. Create one per application session, call :meth:`initialize`
    before use and :meth:`shutdown` when done, or use ``async with``.
    """

    def __init__(
        self,
        settings: Any,
        api_client: Any = None,
        db: Optional[DatabaseManager] = None,
        clock: Callable[[], datetime] = datetime.now,
        auto_start: bool = True,
    ) -> None:
        """Initialize sync session.

        Args:
            settings: Application settings
            api_client: Optional API client (created from settings if omitted)
            db: Optional database manager (created from settings if omitted)
            clock: Time source for cache timestamps
            auto_start: Run the connectivity probe and poller loops as tasks
        """
        self.settings = settings
        self._auto_start = auto_start
        self._owns_api_client = api_client is None

        self.db = db if db is not None else DatabaseManager(settings.database_file)
        self.api = api_client if api_client is not None else EventsApiClient(settings)
        self.cache = LocalCacheStore(settings, self.db, clock=clock)
        self.connectivity = ConnectivityMonitor(refresh_policy=self.cache.should_refresh_on_reconnect)
        self.probe = ConnectivityProbe(settings, self.connectivity, self.api)
        self.orchestrator = DataLoadOrchestrator(self.connectivity, self.cache, self.api)
        self.favorites = FavoritesReconciler(self.db, self.api)

        self.event_poller = ChangeDetectionPoller(
            "events",
            fetch_signal=self._fetch_event_signal,
            reload=self._reload_events,
            interval=settings.poll_interval,
            connectivity=self.connectivity,
            auto_start=auto_start,
        )
        self.venue_poller = ChangeDetectionPoller(
            "venues",
            fetch_signal=self._fetch_venue_signal,
            reload=self._reload_venues,
            interval=settings.poll_interval,
            connectivity=self.connectivity,
            auto_start=auto_start,
        )

        self.user: Optional[User] = None
        self.active_view = ActiveView.NONE
        self.current_filter = EventFilter()
        self.current_venue_category: Optional[int] = None

        self._background_tasks: set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._initialized = False

    async def __aenter__(self) -> "SyncSession":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    async def initialize(self) -> bool:
        """Open storage, restore the persisted user and start connectivity tracking.

        Returns:
            True if durable storage is available, False when running memory-only
        """
        if self._initialized:
            return True

        storage_ok = await self.cache.initialize()
        await self.favorites.initialize()
        self.user = await self._restore_user()

        self._unsubscribe = self.connectivity.subscribe(self._on_connectivity_change)
        if self._auto_start:
            self.probe.start()
        else:
            await self.probe.probe_once()

        if self.user is not None:
            self.favorites.begin_remote_load()
            self._spawn(self._login_sync(self.user.id), "login-favorites")

        self._initialized = True
        logger.info(
            f"Sync session started (user: {self.user.id if self.user else 'anonymous'}, "
            f"connectivity: {self.connectivity.get_state().value})"
        )
        return storage_ok

    async def shutdown(self) -> None:
        """Stop pollers and the probe, wait for background work and release resources."""
        logger.info("Shutting down sync session...")
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        await self.event_poller.stop()
        await self.venue_poller.stop()
        await self.probe.stop()
        await self.wait_for_background_tasks()

        if self._owns_api_client:
            await self.api.close()
        self.active_view = ActiveView.NONE
        self._initialized = False
        logger.info("Sync session shut down")

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=f"eventsync-{name}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._log_task_failure)
        return task

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task {task.get_name()} failed", exc_info=task.exception())

    async def wait_for_background_tasks(self) -> None:
        """Wait until all scheduled background work has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # Connectivity

    def _on_connectivity_change(self, change: ConnectivityChange) -> None:
        if not change.came_online:
            logger.info("Offline: serving cached data until connectivity returns")
            return

        if change.refresh_needed:
            self._spawn(self.orchestrator.load(self.current_filter), "reconnect-reload")
        else:
            logger.debug("Reconnected with fresh cache, no reload needed")

        if self.user is not None:
            self._spawn(self.favorites.sync_with_remote(self.user.id), "reconnect-favorites")

    # Views

    async def show_events(self, event_filter: Optional[EventFilter] = None) -> LoadResult:
        """Load the events view for a filter and start watching it for changes.

        The poller is unbound before the load starts, so a check or reload
        still running for the previous filter is discarded.
        """
        self.current_filter = event_filter or EventFilter()
        self.active_view = ActiveView.EVENTS
        self.venue_poller.deactivate()
        self.event_poller.deactivate()

        result = await self.orchestrator.load(self.current_filter)
        if not result.superseded and self.active_view is ActiveView.EVENTS:
            self.event_poller.activate(self.current_filter, baseline=len(result.events))
        return result

    async def show_venues(self, category_id: Optional[int] = None) -> VenueLoadResult:
        """Load the venues view and start watching it for changes."""
        self.current_venue_category = category_id
        self.active_view = ActiveView.VENUES
        self.event_poller.deactivate()
        self.venue_poller.deactivate()

        result = await self.orchestrator.load_venues(category_id)
        if not result.superseded and self.active_view is ActiveView.VENUES:
            self.venue_poller.activate(category_id, baseline=len(result.venues))
        return result

    def leave_view(self) -> None:
        """Stop watching whichever view is active."""
        self.event_poller.deactivate()
        self.venue_poller.deactivate()
        self.active_view = ActiveView.NONE

    async def _fetch_event_signal(self, context: EventFilter) -> int:
        return int(await self.api.get_event_count(context))

    async def _reload_events(self, context: EventFilter) -> bool:
        result = await self.orchestrator.load(context)
        return result.is_fresh

    async def _fetch_venue_signal(self, context: Optional[int]) -> int:
        return int(await self.api.get_venue_count(context))

    async def _reload_venues(self, context: Optional[int]) -> bool:
        result = await self.orchestrator.load_venues(context)
        return not result.failed

    # User and favorites

    async def _restore_user(self) -> Optional[User]:
        stored = await self.db.get_value(USER_KEY)
        if stored is None:
            return None
        try:
            return User.model_validate(stored)
        except ValidationError:
            logger.warning("Stored user identity is corrupt, ignoring it")
            return None

    async def _login_sync(self, user_id: int) -> None:
        if not await self.favorites.load_remote_on_login(user_id):
            await self.favorites.sync_with_remote(user_id)

    async def login(self, user: User) -> None:
        """Persist the user identity and adopt their remote favorites."""
        self.user = user
        await self.db.set_value(USER_KEY, user.model_dump(mode="json", by_alias=True))
        logger.info(f"User {user.id} logged in")
        await self._login_sync(user.id)

    async def logout(self) -> None:
        """Forget the user identity and the local favorites."""
        if self.user is not None:
            logger.info(f"User {self.user.id} logged out")
        self.user = None
        await self.db.delete_keys(USER_KEY)
        await self.favorites.clear()

    async def toggle_favorite(self, event_id: int) -> bool:
        """Toggle a favorite locally and push it in the background when possible.

        Returns:
            True if the event is a favorite after the toggle
        """
        is_favorite = await self.favorites.toggle(event_id)
        if self.user is not None and self.connectivity.is_online:
            self._spawn(self.favorites.sync_with_remote(self.user.id), "favorites-push")
        return is_favorite

    async def sync_favorites(self) -> Optional[SyncReport]:
        """Push local favorites now; None when nobody is logged in."""
        if self.user is None:
            return None
        return await self.favorites.sync_with_remote(self.user.id)

    async def status(self) -> dict[str, Any]:
        """Get current session status.

        Returns:
            Dictionary with status information
        """
        cache_status = await self.cache.get_cache_status()
        view = self.orchestrator.view
        return {
            "connectivity": self.connectivity.get_state().value,
            "connectivity_signal": self.connectivity.signal_available,
            "user_id": self.user.id if self.user else None,
            "favorites": sorted(self.favorites.favorites),
            "active_view": self.active_view.value,
            "filter": str(self.current_filter),
            "events_shown": len(view.events),
            "using_cached_data": view.using_cached_data,
            "cache": cache_status.model_dump(mode="json"),
        }
