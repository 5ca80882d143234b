"""Logging configuration for the ``yourspend`` package.

Library modules only call ``logging.getLogger(__name__)``; the application
entrypoint calls ``configure_logging`` once to attach a handler.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

_PKG_LOGGER_NAME = "yourspend"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(level: int | str | None = None, *, stream: IO[str] = sys.stderr) -> logging.Logger:
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    logger.setLevel(parse_level(level))
    if not any(getattr(handler, "_yourspend", False) for handler in logger.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        handler._yourspend = True
        logger.addHandler(handler)
    return logger
