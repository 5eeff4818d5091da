"""Tests for logging setup."""

from __future__ import annotations

import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from xrun.utils.logging import LOGGER_NAME, parse_level, setup_logging


class TestParseLevel:
    """Tests for level name parsing."""

    def test_names(self) -> None:
        """Test level names are case-insensitive."""
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("WARNING") == logging.WARNING

    def test_unknown_defaults_to_info(self) -> None:
        """Test an unknown level name falls back to INFO."""
        assert parse_level("chatty") == logging.INFO

    def test_numbers_pass_through(self) -> None:
        """Test numeric levels are returned unchanged."""
        assert parse_level(logging.ERROR) == logging.ERROR


class TestSetupLogging:
    """Tests for logger setup."""

    def test_single_rich_handler(self) -> None:
        """Test repeated setup keeps exactly one RichHandler."""
        logger = setup_logging("debug", Console(file=io.StringIO()))
        setup_logging("warning")

        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert logger.name == LOGGER_NAME
        assert len(handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False
