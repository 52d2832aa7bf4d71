"""Offline-aware data synchronization for the events view."""

from .exceptions import ConnectivityFailure, PartialSyncFailure, SyncError
from .favorites import FavoritesReconciler, SyncReport
from .models import LoadResult, VenueLoadResult, ViewModel
from .orchestrator import DataLoadOrchestrator
from .poller import ChangeDetectionPoller, PollerState
from .session import ActiveView, SyncSession
from .view_filter import filter_events, filter_venues, sort_events

__all__ = [
    "ActiveView",
    "ChangeDetectionPoller",
    "ConnectivityFailure",
    "DataLoadOrchestrator",
    "FavoritesReconciler",
    "LoadResult",
    "PartialSyncFailure",
    "PollerState",
    "SyncError",
    "SyncReport",
    "SyncSession",
    "VenueLoadResult",
    "ViewModel",
    "filter_events",
    "filter_venues",
    "sort_events",
]
