"""Data load orchestration with cache fallback and stale-result discard."""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from ..api.exceptions import ApiError
from ..api.models import Category, Event, EventFilter
from ..cache.exceptions import CacheMiss
from ..cache.manager import LocalCacheStore
from ..cache.models import CacheResource
from ..connectivity.monitor import ConnectivityMonitor
from .exceptions import ConnectivityFailure
from .models import LoadResult, VenueLoadResult, ViewModel

logger = logging.getLogger(__name__)

ViewListener = Callable[[ViewModel], None]


class DataLoadOrchestrator:
    """Fetches categories and events, falls back to the cache, and owns the view model.

    Every call to :meth:`load` takes a new sequence token. A result is applied
    to the view only while its token is still the latest issued, so a slow
    earlier load can never overwrite the result of a later one.
    """

    def __init__(
        self,
        connectivity: ConnectivityMonitor,
        cache: LocalCacheStore,
        api_client: Any,
    ) -> None:
        self.connectivity = connectivity
        self.cache = cache
        self.api = api_client

        self._events_token = 0
        self._venues_token = 0
        self._view = ViewModel()
        self._listeners: list[ViewListener] = []

    @property
    def view(self) -> ViewModel:
        return self._view

    def add_view_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Register a callback receiving every newly applied view model."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _publish(self, view: ViewModel) -> None:
        self._view = view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener failed")

    async def load(self, event_filter: Optional[EventFilter] = None) -> LoadResult:
        """Load categories and events for a filter.

        Args:
            event_filter: Active filter; None or "all" means unfiltered

        Returns:
            The load result. ``superseded`` is True when a later load was
            started before this one finished and the view was left untouched.
        """
        event_filter = event_filter or EventFilter()
        self._events_token += 1
        token = self._events_token
        logger.debug(f"Load #{token} started for {event_filter}")

        try:
            if not self.connectivity.is_online:
                raise ConnectivityFailure("Client is offline")
            categories, events = await self._fetch(event_filter)
        except (ConnectivityFailure, ApiError) as e:
            logger.warning(f"Load #{token}: network unavailable ({e}), using cache")
            result = await self._load_from_cache(event_filter, token, str(e))
        else:
            if event_filter.is_unfiltered:
                await self._write_through(categories, events)
            result = LoadResult(
                events=events,
                categories=categories,
                using_cached_data=False,
                filter=event_filter,
                token=token,
            )
            logger.info(
                f"Load #{token}: fetched {len(events)} events and {len(categories)} categories"
            )

        if token != self._events_token:
            logger.debug(f"Load #{token} superseded by #{self._events_token}, discarding")
            return replace(result, superseded=True)

        self._publish(self._view.with_load(result, is_offline=not self.connectivity.is_online))
        return result

    async def _fetch(self, event_filter: EventFilter) -> tuple[list[Category], list[Event]]:
        # Both requests run concurrently; the first failure wins
        categories, events = await asyncio.gather(
            self.api.get_categories(),
            self.api.get_events(event_filter),
            return_exceptions=True,
        )
        for outcome in (categories, events):
            if isinstance(outcome, BaseException):
                raise outcome
        return categories, events

    async def _write_through(self, categories: list[Category], events: list[Event]) -> None:
        await self.cache.write_snapshot(
            {CacheResource.CATEGORIES: categories, CacheResource.EVENTS: events}
        )

    async def _read_snapshot(self) -> tuple[list[Category], list[Event], Any]:
        categories = await self.cache.read_cache(CacheResource.CATEGORIES)
        events = await self.cache.read_cache(CacheResource.EVENTS)
        # A half snapshot is never rendered
        if categories is None or events is None:
            missing = CacheResource.CATEGORIES if categories is None else CacheResource.EVENTS
            raise CacheMiss(f"No cached {missing.value}", missing.value)

        return categories.payload, events.payload, min(categories.cached_at, events.cached_at)

    async def _load_from_cache(self, event_filter: EventFilter, token: int, error: str) -> LoadResult:
        try:
            categories, events, cached_at = await self._read_snapshot()
        except CacheMiss as e:
            logger.warning(f"Load #{token}: {e.message}, nothing to show")
            return LoadResult.empty(event_filter, token, error=error)

        logger.info(f"Load #{token}: serving {len(events)} cached events from {cached_at}")
        return LoadResult(
            events=events,
            categories=categories,
            using_cached_data=True,
            filter=event_filter,
            token=token,
            cached_at=cached_at,
            error=error,
        )

    async def load_venues(self, category_id: Optional[int] = None) -> VenueLoadResult:
        """Load venues, optionally limited to one venue category.

        Venues are never cached; a failed load yields an empty list.
        """
        self._venues_token += 1
        token = self._venues_token

        try:
            if not self.connectivity.is_online:
                raise ConnectivityFailure("Client is offline")
            venues = await self.api.get_venues(category_id)
        except (ConnectivityFailure, ApiError) as e:
            logger.warning(f"Venue load #{token} failed: {e}")
            result = VenueLoadResult(venues=[], category_id=category_id, token=token, failed=True, error=str(e))
        else:
            logger.info(f"Venue load #{token}: fetched {len(venues)} venues")
            result = VenueLoadResult(venues=venues, category_id=category_id, token=token)

        if token != self._venues_token:
            logger.debug(f"Venue load #{token} superseded by #{self._venues_token}, discarding")
            return replace(result, superseded=True)

        self._publish(self._view.with_venues(result))
        return result
