"""Loguru setup shared by every envsensei module.

Usage:
    from .log import logger
    logger.debug("Scanned {} file(s)", count)

Environment Variables:
    ENVSENSEI_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)

Never pass a literal's raw value to the logger; log variable names, paths
and counts only.
"""

from __future__ import annotations

import os
import sys

from loguru import logger

logger.remove()

_log_level = os.environ.get("ENVSENSEI_LOG_LEVEL", "WARNING").upper()

_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

_handler_id: int | None = logger.add(
    sys.stderr,
    level=_log_level,
    format=_human_format,
    colorize=None,
)


def set_level(level: str) -> None:
    """Replace the stderr handler with one at ``level`` (used by ``--verbose``)."""
    global _handler_id
    if _handler_id is not None:
        logger.remove(_handler_id)
    _handler_id = logger.add(
        sys.stderr,
        level=level.upper(),
        format=_human_format,
        colorize=None,
    )


__all__ = ["logger", "set_level"]
