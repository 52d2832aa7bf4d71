"""Local search, favorites filtering and ordering of loaded listings."""

from collections.abc import Collection, Iterable
from typing import Optional

from ..api.models import Event, Venue


def _matches(query: str, *fields: Optional[str]) -> bool:
    return any(query in field.lower() for field in fields if field)


def filter_events(
    events: Iterable[Event],
    query: str = "",
    favorites: Optional[Collection[int]] = None,
    favorites_only: bool = False,
) -> list[Event]:
    """Filter and order events for display.

    Args:
        events: Loaded events
        query: Case-insensitive text matched against title, description,
            location and organizer
        favorites: Favorite event ids, required when ``favorites_only`` is set
        favorites_only: Keep only favorite events

    Returns:
        Featured events first, each group ordered by start date
    """
    needle = query.strip().lower()
    favorite_ids = set(favorites or ())

    selected = [
        event
        for event in events
        if (not needle or _matches(needle, event.title, event.description, event.location, event.organizer_name))
        and (not favorites_only or event.id in favorite_ids)
    ]
    return sort_events(selected)


def sort_events(events: Iterable[Event]) -> list[Event]:
    return sorted(events, key=lambda event: (not event.is_featured, event.start_date))


def filter_venues(venues: Iterable[Venue], query: str = "") -> list[Venue]:
    """Filter venues by name, description or address."""
    needle = query.strip().lower()
    if not needle:
        return list(venues)
    return [venue for venue in venues if _matches(needle, venue.name, venue.description, venue.address)]
