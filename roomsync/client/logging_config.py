"""Logging configuration for sync client events."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "roomsync"


def configure_logging(log_file: Optional[Union[str, Path]] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure package-wide logging to a rotating file handler."""
    if log_file is None or level is None:
        from .config import get_settings

        settings = get_settings()
        log_file = log_file or settings.log_file
        level = level or settings.log_level
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not logger.handlers:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
