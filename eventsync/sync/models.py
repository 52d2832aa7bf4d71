"""Result and view-model types produced by the synchronization layer."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from ..api.models import Category, Event, EventFilter, Venue


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one events/categories load.

    ``no_data_available`` marks the renderable-but-empty result returned when
    neither the network nor the cache could provide data. ``superseded`` is
    set on results that lost to a later load and were not applied to the view.
    """

    events: list[Event]
    categories: list[Category]
    using_cached_data: bool
    filter: EventFilter
    token: int
    no_data_available: bool = False
    cached_at: Optional[datetime] = None
    error: Optional[str] = None
    superseded: bool = False

    @property
    def is_fresh(self) -> bool:
        """True when the data came from the network."""
        return not self.using_cached_data and not self.no_data_available

    @classmethod
    def empty(cls, event_filter: EventFilter, token: int, error: Optional[str] = None) -> "LoadResult":
        return cls(
            events=[],
            categories=[],
            using_cached_data=False,
            filter=event_filter,
            token=token,
            no_data_available=True,
            error=error,
        )


@dataclass(frozen=True)
class VenueLoadResult:
    """Outcome of one venues load."""

    venues: list[Venue]
    category_id: Optional[int]
    token: int
    failed: bool = False
    error: Optional[str] = None
    superseded: bool = False


@dataclass(frozen=True)
class ViewModel:
    """Snapshot the UI renders; replaced as a whole, never mutated in place."""

    events: list[Event] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    filter: EventFilter = field(default_factory=EventFilter)
    using_cached_data: bool = False
    no_data_available: bool = False
    is_offline: bool = False
    events_token: int = 0

    venues: list[Venue] = field(default_factory=list)
    venue_category_id: Optional[int] = None
    venues_token: int = 0

    def with_load(self, result: LoadResult, is_offline: bool) -> "ViewModel":
        return replace(
            self,
            events=result.events,
            categories=result.categories,
            filter=result.filter,
            using_cached_data=result.using_cached_data,
            no_data_available=result.no_data_available,
            is_offline=is_offline,
            events_token=result.token,
        )

    def with_venues(self, result: VenueLoadResult) -> "ViewModel":
        return replace(
            self,
            venues=result.venues,
            venue_category_id=result.category_id,
            venues_token=result.token,
        )
