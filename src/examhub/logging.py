"""Process-wide logging for examhub.

Modules log through ``logging.getLogger(__name__)``. Their loggers sit under
the ``examhub`` logger, which ``setup_logging`` points at a rotating file
and, optionally, the console.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from examhub.config import Settings

ROOT_LOGGER = "examhub"
LOG_FILE = "examhub.log"
MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    settings: Settings,
    log_file: str = LOG_FILE,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> logging.Logger:
    """Configure the examhub logger from validated settings.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        settings: Settings providing log_dir, log_level and log_to_console.
        log_file: File name inside settings.log_dir.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files to keep.

    Returns:
        The examhub logger.
    """
    log_path = Path(settings.log_dir) / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(settings.log_level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if settings.log_to_console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info("Logging to %s at %s", log_path, settings.log_level)
    return logger
