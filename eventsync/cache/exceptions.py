"""Cache-specific exceptions."""

from typing import Optional


class CacheError(Exception):
    """Base exception for cache-related errors."""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.resource = resource


class CacheMiss(CacheError):
    """Exception raised when no durable snapshot is available."""


class DecodeFailure(CacheError):
    """Exception raised when a stored payload cannot be decoded."""
