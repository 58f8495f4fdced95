"""
Logging setup for the GridSight service.

Handlers hang off the ``gridsight`` package logger rather than the root
logger, so the ASGI server keeps its own access and error logs. Engine
modules only call ``logging.getLogger(__name__)``; this module is the one
place handlers are installed, once at app start-up.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

PACKAGE_LOGGER = "gridsight"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# set on handlers installed here so a second call replaces only those
_OWNED_ATTR = "_gridsight_owned"


def _owned(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED_ATTR, True)
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    format_string: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the ``gridsight`` logger and return it.

    Args:
        level: level name; unknown names fall back to INFO
        log_file: file name for a size-rotated log, or None for console only
        log_dir: directory for *log_file* (created if missing, default ``logs``)
        format_string: record format, default ``DEFAULT_FORMAT``
        max_bytes: rotate the file once it reaches this size
        backup_count: rotated files to keep
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)

    for handler in [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]:
        logger.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_path = None
    if log_file:
        directory = Path(log_dir or "logs")
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / log_file
        handlers.append(
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(_owned(handler))

    if log_path is not None:
        logger.debug("Logging to %s", log_path)
    return logger
