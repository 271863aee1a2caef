"""Central logging configuration for adaptive-coach."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "adaptive_coach"
LOG_LEVEL_ENV_VAR = "ADAPTIVE_COACH_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"

_configured: bool = False


def _resolve_level(level: Optional[str]) -> int:
    """Translate a textual level into the numeric value logging expects."""
    candidate = str(level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LEVEL).upper()
    numeric_level = logging.getLevelName(candidate)
    if isinstance(numeric_level, int):
        return numeric_level

    print(
        f"adaptive-coach: unknown log level '{candidate}', defaulting to {DEFAULT_LEVEL}.",
        file=sys.stderr,
    )
    return logging.getLevelName(DEFAULT_LEVEL)


def configure_logging(*, level: Optional[str] = None, force: bool = False) -> logging.Logger:
    """
    Attach a stderr RichHandler to the package logger.

    Safe to call repeatedly: later calls only adjust the level unless
    force=True, which drops existing handlers and rebuilds them.

    Args:
        level: Level name; defaults to $ADAPTIVE_COACH_LOG_LEVEL, then WARNING
        force: Rebuild handlers even if already configured

    Returns:
        The package logger
    """
    global _configured
    logger = logging.getLogger(LOGGER_NAME)

    if _configured and not force:
        if level is not None:
            logger.setLevel(_resolve_level(level))
        return logger

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    logger.setLevel(_resolve_level(level))
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger
