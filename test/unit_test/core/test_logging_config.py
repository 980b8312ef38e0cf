"""Unit tests for logging configuration module.

Tests verify that the logging configuration functions work correctly with different
scenarios including various log levels, formats, and file logging options.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from kublade.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


def _console_handler():
    return next(
        (
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ),
        None,
    )


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("debug", logging.DEBUG),
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        """Test setup_logging configures correct log level."""
        setup_logging(log_level=log_level, enable_file=False)

        console_handler = _console_handler()
        assert console_handler is not None
        assert console_handler.level == expected_level


class TestSetupLoggingFormats:
    """Test setup_logging with different log formats."""

    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", JSON_FORMAT),
            ("unknown", DETAILED_FORMAT),
        ],
    )
    def test_setup_logging_with_different_formats(self, log_format, expected_format):
        """Test setup_logging configures correct format."""
        setup_logging(log_format=log_format, enable_file=False)

        console_handler = _console_handler()
        assert console_handler is not None
        assert console_handler.formatter._fmt == expected_format
        assert console_handler.formatter.datefmt == "%Y-%m-%d %H:%M:%S"


class TestSetupLoggingFileHandling:
    """Test setup_logging file logging functionality."""

    def test_setup_logging_with_file_enabled(self, tmp_path: Path):
        """Test setup_logging creates a DEBUG file handler when enabled."""
        log_dir = tmp_path / "logs"
        with patch("kublade.core.logging_config.LOG_FILE_DIR", str(log_dir)):
            with patch("kublade.core.logging_config.ENABLE_FILE_LOGGING", True):
                setup_logging(log_level="ERROR", enable_file=True)

        file_handler = next((h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)), None)
        assert file_handler is not None
        assert file_handler.level == logging.DEBUG
        assert log_dir.exists()

        file_handler.close()
        setup_logging(enable_file=False)

    def test_setup_logging_file_disabled_by_settings(self):
        """Test the settings switch wins over the enable_file argument."""
        with patch("kublade.core.logging_config.ENABLE_FILE_LOGGING", False):
            setup_logging(enable_file=True)

        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)


class TestSetupLoggingHandlerManagement:
    """Test setup_logging handler management."""

    def test_setup_logging_removes_existing_handlers(self):
        """Test repeated setup does not stack console handlers."""
        setup_logging(enable_file=False)
        setup_logging(enable_file=False)

        console_handlers = [
            h
            for h in logging.getLogger().handlers
            if type(h) is logging.StreamHandler
        ]
        assert len(console_handlers) == 1

    def test_module_levels_are_applied(self):
        """Test per-module log levels are configured."""
        setup_logging(enable_file=False)

        for module_name, level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(level)


class TestGetLogger:
    def test_get_logger_returns_named_logger(self):
        logger = get_logger("kublade.jobs.template.actions")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "kublade.jobs.template.actions"
