"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional, cast

import yaml
from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "EVENTSYNC_"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(
        default="DEBUG",
        description="File log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    file_directory: Optional[str] = Field(
        default=None, description="Custom log directory (defaults to data_dir/logs)"
    )
    file_prefix: str = Field(default="eventsync", description="Log file prefix")
    max_log_files: int = Field(default=5, description="Maximum number of log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class EventSyncSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)

    # Backend
    api_base_url: str = Field(
        default="http://localhost:3000", description="Base URL of the events backend"
    )
    app_name: str = Field(default="EventSync", description="Application name")

    # Network and Retry Settings
    request_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=2, description="Maximum retry attempts")
    retry_backoff_factor: float = Field(default=1.5, description="Exponential backoff factor")

    # Synchronization policy
    poll_interval: float = Field(
        default=3.0, description="Change detection poll interval in seconds"
    )
    staleness_threshold: int = Field(
        default=300,
        description="Maximum snapshot age in seconds before a reconnect forces a refresh",
    )

    # Connectivity probing
    connectivity_probe_url: Optional[str] = Field(
        default=None,
        description="URL probed to detect connectivity (unset keeps the client always online)",
    )
    connectivity_check_interval: float = Field(
        default=15.0, description="Seconds between connectivity probes"
    )
    connectivity_probe_timeout: float = Field(
        default=5.0, description="Timeout for a single connectivity probe"
    )

    # File Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "eventsync")
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "eventsync")

    # Logging Configuration
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        # Explicit arguments and environment variables win over YAML values
        self._explicit_args = set(kwargs.keys()) | {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.startswith(ENV_PREFIX)
        }

        self._load_yaml_config()

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in standard locations."""
        candidates = [
            Path.cwd() / "config.yaml",
            self.config_file,
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return None

    def _apply_section(self, config_data: dict, names: list[str]) -> None:
        for name in names:
            if name in config_data and name not in self._explicit_args:
                setattr(self, name, config_data[name])

    def _load_logging_config(self, config_data: dict) -> None:
        """Load the nested logging section from YAML data."""
        logging_config = config_data.get("logging")
        if not isinstance(logging_config, dict) or "logging" in self._explicit_args:
            return

        for key, value in logging_config.items():
            if hasattr(self.logging, key):
                setattr(self.logging, key, value)

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            self._apply_section(config_data, ["api_base_url", "app_name"])
            self._apply_section(
                config_data, ["request_timeout", "max_retries", "retry_backoff_factor"]
            )
            self._apply_section(config_data, ["poll_interval", "staleness_threshold"])
            self._apply_section(
                config_data,
                [
                    "connectivity_probe_url",
                    "connectivity_check_interval",
                    "connectivity_probe_timeout",
                ],
            )
            if "data_dir" in config_data and "data_dir" not in self._explicit_args:
                self.data_dir = Path(config_data["data_dir"]).expanduser()
            self._load_logging_config(config_data)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def database_file(self) -> Path:
        """Path to SQLite database file."""
        return self.data_dir / "eventsync.db"

    @property
    def config_file(self) -> Path:
        """Path to YAML configuration file."""
        return self.config_dir / "config.yaml"


# Global settings management
_settings_instance: Optional[EventSyncSettings] = None


def get_settings() -> EventSyncSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = EventSyncSettings()
    return cast(EventSyncSettings, globals()["_settings_instance"])


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
