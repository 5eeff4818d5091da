"""Logging setup for the xrun CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "xrun"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(level: str | int) -> int:
    """Convert a config level name (debug, info, ...) to a logging level."""
    if isinstance(level, int):
        return level
    return LEVELS.get(level.lower(), logging.INFO)


def setup_logging(level: str | int = "info", console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the package logger.

    Calling it again only updates the level.

    Args:
        level: Level name or number.
        console: Console to render on. Defaults to stderr.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(parse_level(level))

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
