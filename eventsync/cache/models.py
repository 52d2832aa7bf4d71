"""Models for cached snapshots and synchronization metadata."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class CacheResource(str, Enum):
    """Logical remote collections eligible for snapshot caching."""

    CATEGORIES = "categories"
    EVENTS = "events"


class CacheEntry(BaseModel, Generic[T]):
    """Last-known-good snapshot of one resource."""

    payload: T
    cached_at: datetime


class SyncMetadata(BaseModel):
    """Metadata about the last successful cache write."""

    last_sync_at: Optional[datetime] = None

    def age(self, now: datetime) -> Optional[timedelta]:
        """Time elapsed since the last sync, or None if never synced."""
        if self.last_sync_at is None:
            return None
        return now - self.last_sync_at

    def is_stale(self, threshold_seconds: float, now: datetime) -> bool:
        """Check whether the snapshot is older than the staleness threshold."""
        age = self.age(now)
        if age is None:
            return True
        return age.total_seconds() > threshold_seconds


class CacheStatus(BaseModel):
    """Summary of the cache state for display/logging."""

    has_categories: bool = False
    has_events: bool = False
    category_count: int = 0
    event_count: int = 0
    last_sync_at: Optional[datetime] = None
    is_stale: bool = True
    staleness_threshold_seconds: int = 300
    database_size_bytes: int = 0

    @property
    def has_snapshot(self) -> bool:
        """True when both resources can be served offline."""
        return self.has_categories and self.has_events
