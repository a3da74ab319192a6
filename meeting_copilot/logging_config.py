"""Logging setup: LOG_LEVEL for the package logger, optional rotating LOG_FILE."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from meeting_copilot.config import get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging() -> logging.Logger:
    """Apply LOG_LEVEL / LOG_FILE to the meeting_copilot logger. Idempotent."""
    settings = get_settings()
    logger = logging.getLogger("meeting_copilot")
    level = logging.getLevelName((settings.LOG_LEVEL or "INFO").upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)

    if not logger.handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(console)

        log_file = (settings.LOG_FILE or "").strip()
        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3)
            handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
            logger.addHandler(handler)

    return logger
