"""Local-first favorites with remote reconciliation."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..api.exceptions import ApiError
from ..cache.database import FAVORITES_KEY, DatabaseManager
from .exceptions import PartialSyncFailure

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Summary of one favorites reconciliation."""

    user_id: int
    to_add: set[int] = field(default_factory=set)
    to_remove: set[int] = field(default_factory=set)
    failed_add: set[int] = field(default_factory=set)
    failed_remove: set[int] = field(default_factory=set)
    remote_unavailable: bool = False

    @property
    def succeeded(self) -> bool:
        return not (self.remote_unavailable or self.failed_add or self.failed_remove)


class FavoritesReconciler:
    """Keeps the local favorites set authoritative and pushes its diff to the server.

    Toggles change the in-memory set immediately and are persisted in call
    order; the remote store is only touched by :meth:`sync_with_remote` and
    :meth:`load_remote_on_login`. Sync passes run one at a time, each
    diffing against the remote state left by the previous one.
    """

    def __init__(self, db: DatabaseManager, api_client: Any) -> None:
        self.db = db
        self.api = api_client
        self._local: set[int] = set()
        self._write_lock = asyncio.Lock()
        self._sync_lock = asyncio.Lock()
        self._loaded_users: set[int] = set()
        # event id -> membership, for toggles made while a login load is in flight
        self._pending_toggles: Optional[dict[int, bool]] = None

    @property
    def favorites(self) -> frozenset[int]:
        return frozenset(self._local)

    def is_favorite(self, event_id: int) -> bool:
        return event_id in self._local

    async def initialize(self) -> None:
        """Load the persisted local set."""
        stored = await self.db.get_value(FAVORITES_KEY, default=[])
        try:
            self._local = {int(event_id) for event_id in stored}
        except (TypeError, ValueError):
            logger.warning(f"Corrupt favorites entry {stored!r}, starting empty")
            self._local = set()
        logger.debug(f"Loaded {len(self._local)} local favorites")

    async def _persist(self) -> None:
        # Snapshot under the lock so concurrent toggles land in call order
        async with self._write_lock:
            snapshot = sorted(self._local)
            if not await self.db.set_value(FAVORITES_KEY, snapshot):
                logger.error("Failed to persist favorites")

    async def toggle(self, event_id: int) -> bool:
        """Flip membership of an event in the local set.

        Returns:
            True if the event is a favorite after the toggle
        """
        if event_id in self._local:
            self._local.discard(event_id)
            is_favorite = False
        else:
            self._local.add(event_id)
            is_favorite = True
        if self._pending_toggles is not None:
            self._pending_toggles[event_id] = is_favorite

        logger.debug(f"Favorite {event_id} {'added' if is_favorite else 'removed'} locally")
        await self._persist()
        return is_favorite

    async def replace(self, event_ids: set[int]) -> None:
        self._local = set(event_ids)
        await self._persist()

    async def clear(self) -> None:
        self._loaded_users.clear()
        await self.replace(set())

    async def sync_with_remote(self, user_id: int) -> SyncReport:
        """Push the local set to the remote store.

        Remote-only entries are removed and local-only entries are added, so a
        fully successful sync leaves the remote set equal to the local one.
        Individual failures are reported and retried on the next sync. Passes
        started while another is running wait for it, then diff afresh.
        """
        async with self._sync_lock:
            return await self._sync_pass(user_id)

    async def _sync_pass(self, user_id: int) -> SyncReport:
        report = SyncReport(user_id=user_id)
        try:
            remote = await self.api.get_favorites(user_id)
        except ApiError as e:
            logger.warning(f"Favorites sync skipped, remote unavailable: {e}")
            report.remote_unavailable = True
            return report

        local = set(self._local)
        report.to_add = local - remote
        report.to_remove = remote - local
        if not report.to_add and not report.to_remove:
            logger.debug(f"Favorites for user {user_id} already in sync")
            return report

        try:
            await self._push_diff(user_id, report.to_add, report.to_remove)
        except PartialSyncFailure as e:
            logger.warning(e.message)
            report.failed_add = e.failed_add
            report.failed_remove = e.failed_remove
        else:
            logger.info(
                f"Favorites synced for user {user_id}: "
                f"+{len(report.to_add)} -{len(report.to_remove)}"
            )
        return report

    async def _push_diff(self, user_id: int, to_add: set[int], to_remove: set[int]) -> None:
        adds = sorted(to_add)
        removes = sorted(to_remove)
        outcomes = await asyncio.gather(
            *(self.api.add_favorite(user_id, event_id) for event_id in adds),
            *(self.api.remove_favorite(user_id, event_id) for event_id in removes),
            return_exceptions=True,
        )

        failed_add = {
            event_id for event_id, outcome in zip(adds, outcomes[: len(adds)])
            if isinstance(outcome, Exception)
        }
        failed_remove = {
            event_id for event_id, outcome in zip(removes, outcomes[len(adds):])
            if isinstance(outcome, Exception)
        }
        if failed_add or failed_remove:
            raise PartialSyncFailure(user_id, failed_add, failed_remove)

    def begin_remote_load(self) -> None:
        """Start recording toggles ahead of a scheduled :meth:`load_remote_on_login`."""
        if self._pending_toggles is None:
            self._pending_toggles = {}

    async def load_remote_on_login(self, user_id: int) -> bool:
        """Adopt the remote set as the local one, once per session start.

        Toggles made after :meth:`begin_remote_load` (or after this call
        started) and before the remote set arrives are applied on top of it.

        Returns:
            True if the local set was replaced and now mirrors the remote one
        """
        self.begin_remote_load()
        try:
            if user_id in self._loaded_users:
                return False

            async with self._sync_lock:
                try:
                    remote = await self.api.get_favorites(user_id)
                except ApiError as e:
                    logger.warning(f"Could not load remote favorites for user {user_id}: {e}")
                    return False

                pending = self._pending_toggles or {}
                merged = set(remote)
                for event_id, is_favorite in pending.items():
                    if is_favorite:
                        merged.add(event_id)
                    else:
                        merged.discard(event_id)

                self._loaded_users.add(user_id)
                await self.replace(merged)
        finally:
            self._pending_toggles = None

        if pending:
            logger.info(
                f"Loaded {len(remote)} remote favorites for user {user_id}, "
                f"kept {len(pending)} toggle(s) made meanwhile"
            )
            return False

        logger.info(f"Loaded {len(remote)} remote favorites for user {user_id}")
        return True
