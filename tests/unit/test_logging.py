"""Unit tests for logging setup."""

import logging
from pathlib import Path
from types import SimpleNamespace

import pytest

from eventsync.utils.logging import (
    VERBOSE,
    AutoColoredFormatter,
    TimestampedFileHandler,
    apply_command_line_overrides,
    get_log_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("eventsync")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestLogLevels:
    """Test level name resolution."""

    def test_get_log_level_when_verbose_then_custom_level(self) -> None:
        assert get_log_level("verbose") == VERBOSE == 15

    def test_get_log_level_when_standard_name_then_logging_constant(self) -> None:
        assert get_log_level("WARNING") == logging.WARNING

    def test_verbose_method_when_level_enabled_then_record_emitted(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("eventsync.test")
        with caplog.at_level(VERBOSE, logger="eventsync.test"):
            logger.verbose("poller tick")  # type: ignore[attr-defined]

        assert caplog.records[0].levelname == "VERBOSE"


class TestSetupLogging:
    """Test handler configuration."""

    def test_setup_logging_when_console_only_then_single_stream_handler(self, test_settings) -> None:
        test_settings.logging.console_level = "WARNING"

        logger = setup_logging(test_settings)

        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, AutoColoredFormatter)

    def test_setup_logging_when_file_enabled_then_writes_under_data_dir(self, test_settings) -> None:
        test_settings.logging.file_enabled = True

        logger = setup_logging(test_settings)

        file_handlers = [h for h in logger.handlers if isinstance(h, TimestampedFileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename).parent == test_settings.data_dir / "logs"

    def test_setup_logging_when_called_then_third_party_loggers_quietened(self, test_settings) -> None:
        setup_logging(test_settings)

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_formatter_when_colors_enabled_then_level_name_wrapped(self) -> None:
        formatter = AutoColoredFormatter("%(levelname)s %(message)s", enable_colors=False)
        formatter.use_colors = True
        record = logging.LogRecord("eventsync", logging.WARNING, __file__, 1, "stale cache", None, None)

        assert formatter.format(record) == "\033[33mWARNING\033[0m stale cache"

    def test_formatter_when_colors_disabled_then_plain_output(self) -> None:
        formatter = AutoColoredFormatter("%(levelname)s %(message)s", enable_colors=False)
        record = logging.LogRecord("eventsync", logging.ERROR, __file__, 1, "offline", None, None)

        assert formatter.use_colors is False
        assert formatter.format(record) == "ERROR offline"

    def test_timestamped_handler_when_too_many_files_then_oldest_removed(self, tmp_path: Path) -> None:
        for i in range(4):
            (tmp_path / f"eventsync_2024010{i}_000000.log").write_text("old")

        handler = TimestampedFileHandler(tmp_path, max_files=2)
        handler.close()

        assert len(list(tmp_path.glob("eventsync_*.log"))) == 2


class TestCommandLineOverrides:
    """Test CLI logging overrides."""

    def test_overrides_when_verbose_then_both_levels_verbose(self, test_settings) -> None:
        apply_command_line_overrides(test_settings, SimpleNamespace(verbose=True))

        assert test_settings.logging.console_level == "VERBOSE"
        assert test_settings.logging.file_level == "VERBOSE"

    def test_overrides_when_log_dir_given_then_file_logging_enabled(self, test_settings, tmp_path: Path) -> None:
        apply_command_line_overrides(test_settings, SimpleNamespace(log_dir=tmp_path / "logs"))

        assert test_settings.logging.file_enabled is True
        assert test_settings.logging.file_directory == tmp_path / "logs"
