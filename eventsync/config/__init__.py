"""Configuration package."""

from .settings import EventSyncSettings, LoggingSettings, get_settings, reset_settings

__all__ = ["EventSyncSettings", "LoggingSettings", "get_settings", "reset_settings"]
