"""Logging for the worklog package.

All module loggers hang off the ``worklog`` logger, which gets one stream
handler the first time any of them is requested. Level comes from
WORKLOG_LOG_LEVEL (default INFO).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

PACKAGE_LOGGER = "worklog"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv("WORKLOG_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


@lru_cache(maxsize=1)
def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(_level_from_env())
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a worklog module; names outside the package are nested under it."""
    _package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
