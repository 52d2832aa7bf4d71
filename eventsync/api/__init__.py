"""Events backend client package."""

from .client import EventsApiClient
from .exceptions import ApiDecodeError, ApiError, ApiNetworkError, ApiStatusError, ApiTimeoutError
from .models import Category, Event, EventCategory, EventFilter, User, Venue, VenueCategory

__all__ = [
    "ApiDecodeError",
    "ApiError",
    "ApiNetworkError",
    "ApiStatusError",
    "ApiTimeoutError",
    "Category",
    "Event",
    "EventCategory",
    "EventFilter",
    "EventsApiClient",
    "User",
    "Venue",
    "VenueCategory",
]
