"""Local data caching package for offline functionality."""

from .database import DatabaseManager
from .exceptions import CacheError, CacheMiss, DecodeFailure
from .manager import LocalCacheStore
from .models import CacheEntry, CacheResource, CacheStatus, SyncMetadata

__all__ = [
    "CacheEntry",
    "CacheError",
    "CacheMiss",
    "CacheResource",
    "CacheStatus",
    "DatabaseManager",
    "DecodeFailure",
    "LocalCacheStore",
    "SyncMetadata",
]
