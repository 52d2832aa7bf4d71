"""SQLite key-value storage for cached snapshots, sync metadata and favorites."""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import aiosqlite

logger = logging.getLogger(__name__)

# Stable key namespace for everything the client keeps durably
CACHE_KEY_PREFIX = "cache:"
LAST_SYNC_KEY = "meta:last_sync_at"
FAVORITES_KEY = "favorites:event_ids"
USER_KEY = "session:user"


class DatabaseManager:
    """Manages SQLite operations for the client's durable key-value store.

    Values are stored as JSON text. Reads never raise: a missing key, a
    corrupt value and a storage failure all read as absent.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None

        logger.debug(f"Database manager initialized (lazy): {database_path}")

    async def _ensure_initialized(self) -> bool:
        """Ensure database is initialized before operations."""
        if self._initialized:
            return True

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            # Double-check after acquiring lock
            if self._initialized:
                return True

            try:
                self._initialized = await self._initialize_database()
            except Exception:
                logger.exception("Failed to initialize database")
                return False
            return self._initialized

    async def _initialize_database(self) -> bool:
        async with aiosqlite.connect(str(self.database_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )
            await db.commit()

        logger.debug(f"Database schema ready at {self.database_path}")
        return True

    async def initialize(self) -> bool:
        """Initialize database schema.

        Returns:
            True if initialization was successful, False otherwise
        """
        return await self._ensure_initialized()

    async def get_raw(self, key: str) -> Optional[str]:
        """Get the stored JSON text for a key, or None."""
        if not await self._ensure_initialized():
            return None

        try:
            async with aiosqlite.connect(str(self.database_path)) as db:
                cursor = await db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = await cursor.fetchone()
        except Exception:
            logger.exception(f"Failed to read key {key!r}")
            return None

        return row[0] if row else None

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Get a decoded JSON value for a key.

        Args:
            key: Storage key
            default: Returned when the key is missing or its value is corrupt

        Returns:
            Decoded value or ``default``
        """
        raw = await self.get_raw(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Corrupt value stored under {key!r}, treating as absent")
            return default

    async def set_values(self, values: dict[str, Any]) -> bool:
        """Write several keys in one transaction.

        Args:
            values: Mapping of key to JSON-serializable value

        Returns:
            True if every key was written, False if nothing was written
        """
        if not await self._ensure_initialized():
            return False

        now_str = datetime.now().isoformat()
        try:
            rows = [(key, json.dumps(value), now_str) for key, value in values.items()]
        except (TypeError, ValueError):
            logger.exception(f"Values for {sorted(values)} are not JSON-serializable")
            return False

        try:
            async with aiosqlite.connect(str(self.database_path)) as db:
                await db.executemany(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                    rows,
                )
                await db.commit()
        except Exception:
            logger.exception(f"Failed to write keys {sorted(values)}")
            return False

        logger.debug(f"Stored keys {sorted(values)}")
        return True

    async def set_value(self, key: str, value: Any) -> bool:
        """Write one key."""
        return await self.set_values({key: value})

    async def delete_keys(self, *keys: str) -> int:
        """Delete keys, returning the number of rows removed."""
        if not keys or not await self._ensure_initialized():
            return 0

        placeholders = ", ".join("?" for _ in keys)
        try:
            async with aiosqlite.connect(str(self.database_path)) as db:
                cursor = await db.execute(
                    f"DELETE FROM kv_store WHERE key IN ({placeholders})",  # nosec B608
                    keys,
                )
                await db.commit()
                return cursor.rowcount
        except Exception:
            logger.exception(f"Failed to delete keys {keys}")
            return 0

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key in a namespace."""
        if not await self._ensure_initialized():
            return 0

        try:
            async with aiosqlite.connect(str(self.database_path)) as db:
                cursor = await db.execute(
                    "DELETE FROM kv_store WHERE key LIKE ? ESCAPE '\\'",
                    (prefix.replace("_", "\\_").replace("%", "\\%") + "%",),
                )
                await db.commit()
                return cursor.rowcount
        except Exception:
            logger.exception(f"Failed to delete keys with prefix {prefix!r}")
            return 0

    async def get_database_info(self) -> dict[str, Any]:
        """Get database information for status reporting."""
        info: dict[str, Any] = {
            "database_path": str(self.database_path),
            "file_size_bytes": 0,
            "keys": [],
        }
        try:
            if self.database_path.exists():
                info["file_size_bytes"] = self.database_path.stat().st_size

            if await self._ensure_initialized():
                async with aiosqlite.connect(str(self.database_path)) as db:
                    cursor = await db.execute("SELECT key FROM kv_store ORDER BY key")
                    info["keys"] = [row[0] async for row in cursor]
        except Exception:
            logger.exception("Failed to get database info")

        return info


def cache_key(resource: str) -> str:
    """Storage key of a cached resource snapshot."""
    return f"{CACHE_KEY_PREFIX}{resource}"
