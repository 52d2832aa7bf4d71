"""Shared utilities."""

from .logging import VERBOSE, get_log_level, setup_logging

__all__ = ["VERBOSE", "get_log_level", "setup_logging"]
