"""
Logging setup driven by application settings
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from ..config import settings

_configured = False


def setup_logging(force: bool = False) -> None:
    """
    Configure the root logger from settings.

    Console output goes to stdout; file output rotates at
    ``log_max_size_mb`` keeping ``log_backup_count`` old files.
    """
    global _configured
    if _configured and not force:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(settings.log_format)

    if settings.log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        root.addHandler(console)

    if settings.log_to_file:
        log_dir = os.path.dirname(settings.log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file_path,
            maxBytes=settings.log_max_size_mb * 1024 * 1024,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # SQL echo is controlled by log_verbosity in database.py
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def verbose_level() -> int:
    """INFO under full verbosity, DEBUG otherwise."""
    return logging.INFO if settings.log_verbosity == "full" else logging.DEBUG
