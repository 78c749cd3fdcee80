"""Logging configuration."""

import logging
import sys
from typing import Optional

from config.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Driver loggers that are noisy below WARNING (heartbeats, connection pool events)
QUIET_LOGGERS = ("pymongo", "motor")


def _level(name: Optional[str]) -> int:
    return getattr(logging, (name or settings.log_level).upper(), logging.INFO)


def setup_logger(name: str = __name__, level: Optional[str] = None) -> logging.Logger:
    """Set up a stdout logger for a module.

    The level comes from settings unless `level` overrides it. Records do not
    propagate to the root logger, so uvicorn's handler does not print them twice.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_level(level))
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    for quiet in QUIET_LOGGERS:
        logging.getLogger(quiet).setLevel(max(logging.WARNING, _level(None)))

    return logger
