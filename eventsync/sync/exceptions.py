"""Synchronization exceptions."""

from collections.abc import Iterable
from typing import Optional


class SyncError(Exception):
    """Base exception for synchronization errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConnectivityFailure(SyncError):
    """Exception raised when the remote store cannot be reached."""


class PartialSyncFailure(SyncError):
    """Exception raised when some favorite add/remove calls failed."""

    def __init__(
        self,
        user_id: int,
        failed_add: Optional[Iterable[int]] = None,
        failed_remove: Optional[Iterable[int]] = None,
    ):
        self.user_id = user_id
        self.failed_add = set(failed_add or ())
        self.failed_remove = set(failed_remove or ())
        super().__init__(
            f"Favorites sync for user {user_id} incomplete: "
            f"{len(self.failed_add)} add(s) and {len(self.failed_remove)} removal(s) failed"
        )
