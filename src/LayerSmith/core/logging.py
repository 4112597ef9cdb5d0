"""Logging setup for the layered material compositor.

The compositor is embedded in a host renderer, so only the
``layered_material`` logger hierarchy is configured; root handlers belong to
the host.
"""

import logging
import logging.handlers
import os
import threading

LOGGER_NAME = "layered_material"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(LOGGER_NAME)

# 10 MB max per log file, keep 3 rotated backups
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3
_setup_lock = threading.Lock()


def resolve_level(level) -> int:
    """Map a level name to its numeric value, falling back to INFO."""
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        logger.warning("Invalid log level '%s', defaulting to INFO", level)
        return logging.INFO
    return numeric_level


def setup_logging(level: str = "INFO", log_file: str = None):
    """Set the package log level and optionally add a rotating log file.

    Calling again with the same ``log_file`` does not add a second handler.
    """
    with _setup_lock:
        logger.setLevel(resolve_level(level))
        if not log_file:
            return
        target = os.path.abspath(log_file)
        for handler in logger.handlers:
            if getattr(handler, "baseFilename", None) == target:
                return
        os.makedirs(os.path.dirname(target), exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            target, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
        logger.info("Logging to %s", target)
