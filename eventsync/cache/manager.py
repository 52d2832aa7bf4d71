"""Local cache store for last-known-good snapshots and sync metadata."""

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..api.models import Category, Event
from .database import CACHE_KEY_PREFIX, LAST_SYNC_KEY, DatabaseManager, cache_key
from .exceptions import DecodeFailure
from .models import CacheEntry, CacheResource, CacheStatus, SyncMetadata

logger = logging.getLogger(__name__)

_ENTRY_ADAPTERS: dict[CacheResource, TypeAdapter[Any]] = {
    CacheResource.CATEGORIES: TypeAdapter(CacheEntry[list[Category]]),
    CacheResource.EVENTS: TypeAdapter(CacheEntry[list[Event]]),
}


class LocalCacheStore:
    """Durable read/write of resource snapshots and sync metadata.

    Pure storage: no network calls. Reads never raise; an absent, unreadable
    or corrupt snapshot is reported as ``None``.
    """

    def __init__(
        self,
        settings: Any,
        db: Optional[DatabaseManager] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize cache store.

        Args:
            settings: Application settings
            db: Optional shared database manager (created from settings if omitted)
            clock: Time source for cache timestamps
        """
        self.settings = settings
        self.db = db if db is not None else DatabaseManager(settings.database_file)
        self._clock = clock
        self._metadata = SyncMetadata()

        logger.debug("Local cache store initialized")

    async def initialize(self) -> bool:
        """Initialize storage and load sync metadata into memory.

        Returns:
            True if initialization was successful, False otherwise
        """
        if not await self.db.initialize():
            logger.error("Cache storage unavailable, running without durable snapshots")
            return False

        self._metadata = await self._load_metadata()
        logger.info(
            f"Cache store ready (last sync: {self._metadata.last_sync_at or 'never'})"
        )
        return True

    async def _load_metadata(self) -> SyncMetadata:
        raw = await self.db.get_value(LAST_SYNC_KEY)
        if raw is None:
            return SyncMetadata()

        try:
            return SyncMetadata(last_sync_at=datetime.fromisoformat(raw))
        except (TypeError, ValueError):
            logger.warning(f"Corrupt sync metadata {raw!r}, treating as never synced")
            return SyncMetadata()

    @property
    def sync_metadata(self) -> SyncMetadata:
        """In-memory copy of the durable sync metadata."""
        return self._metadata

    def _decode_entry(self, resource: CacheResource, raw: Any) -> CacheEntry:
        try:
            entry: CacheEntry = _ENTRY_ADAPTERS[resource].validate_python(raw)
        except ValidationError as e:
            raise DecodeFailure(f"Cached {resource.value} payload is corrupt: {e}", resource.value)
        return entry

    async def read_cache(self, resource: CacheResource) -> Optional[CacheEntry]:
        """Read the snapshot of a resource.

        Args:
            resource: Resource to read

        Returns:
            The cache entry, or None when never written or corrupt
        """
        raw = await self.db.get_value(cache_key(resource.value))
        if raw is None:
            logger.debug(f"Cache miss for {resource.value}")
            return None

        try:
            entry = self._decode_entry(resource, raw)
        except DecodeFailure as e:
            logger.warning(f"{e.message}; treating as cache miss")
            return None

        logger.debug(f"Cache hit for {resource.value} (cached at {entry.cached_at})")
        return entry

    async def write_cache(self, resource: CacheResource, payload: Sequence[BaseModel]) -> bool:
        """Overwrite the snapshot of a resource and refresh sync metadata.

        Only results of unfiltered fetches may be written here.

        Returns:
            True if the snapshot was stored, False otherwise
        """
        return await self.write_snapshot({resource: payload})

    async def write_snapshot(self, payloads: Mapping[CacheResource, Sequence[BaseModel]]) -> bool:
        """Overwrite several resource snapshots at once.

        All entries share one ``cached_at`` and are stored together with
        ``last_sync_at`` in a single transaction.

        Args:
            payloads: Unfiltered fetch results keyed by resource

        Returns:
            True if the snapshot was stored, False otherwise
        """
        now = self._clock()
        values: dict[str, Any] = {
            cache_key(resource.value): CacheEntry(payload=list(payload), cached_at=now).model_dump(
                mode="json", by_alias=True
            )
            for resource, payload in payloads.items()
        }
        values[LAST_SYNC_KEY] = now.isoformat()
        names = ", ".join(resource.value for resource in payloads)

        if not await self.db.set_values(values):
            logger.error(f"Failed to cache {names}")
            return False

        self._metadata = SyncMetadata(last_sync_at=now)
        logger.debug(f"Cached {names} at {now}")
        return True

    def should_refresh_on_reconnect(self) -> bool:
        """Decide whether a reconnect should force a reload.

        True when no sync has ever been recorded or the last sync is older
        than ``settings.staleness_threshold`` seconds.
        """
        stale = self._metadata.is_stale(self.settings.staleness_threshold, self._clock())
        logger.debug(
            f"Reconnect refresh check: last_sync={self._metadata.last_sync_at}, stale={stale}"
        )
        return stale

    async def get_cache_status(self) -> CacheStatus:
        """Get current cache status for display/logging."""
        categories = await self.read_cache(CacheResource.CATEGORIES)
        events = await self.read_cache(CacheResource.EVENTS)
        db_info = await self.db.get_database_info()

        return CacheStatus(
            has_categories=categories is not None,
            has_events=events is not None,
            category_count=len(categories.payload) if categories else 0,
            event_count=len(events.payload) if events else 0,
            last_sync_at=self._metadata.last_sync_at,
            is_stale=self.should_refresh_on_reconnect(),
            staleness_threshold_seconds=self.settings.staleness_threshold,
            database_size_bytes=db_info.get("file_size_bytes", 0),
        )

    async def clear_cache(self) -> bool:
        """Drop all snapshots and the sync metadata.

        The whole snapshot namespace is removed, including entries of
        resources this version no longer knows about.
        """
        removed = await self.db.delete_prefix(CACHE_KEY_PREFIX)
        removed += await self.db.delete_keys(LAST_SYNC_KEY)
        self._metadata = SyncMetadata()
        logger.info(f"Cache cleared ({removed} entries removed)")
        return True
