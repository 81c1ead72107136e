"""
Logging configuration for netchart.

One stdout handler per named logger, at the level configured by
APP_LOG_LEVEL.
"""

import logging
import sys
from typing import Optional

from ..config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (defaults to 'netchart')
        level: Level name overriding the configured one

    Returns:
        Logger with a stdout handler attached on first use
    """
    logger = logging.getLogger(name or "netchart")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        logger.setLevel(level or settings.app_log_level)

    return logger
