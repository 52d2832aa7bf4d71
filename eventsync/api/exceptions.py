"""Events backend API exceptions."""

from typing import Optional


class ApiError(Exception):
    """Base exception for events backend errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiNetworkError(ApiError):
    """Exception raised when the backend is unreachable at transport level."""


class ApiTimeoutError(ApiNetworkError):
    """Exception raised when a backend request times out."""


class ApiStatusError(ApiError):
    """Exception raised when the backend answers with a non-2xx status."""


class ApiDecodeError(ApiError):
    """Exception raised when a backend payload cannot be decoded."""
