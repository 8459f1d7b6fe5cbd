"""
Logging for the relay.

Every module logs to the ``voice_relay`` logger; session records are prefixed
with the call's connection id. Session state transitions, stream start/stop and
the per-call counter summary are logged at INFO. Dropped or malformed frames
log at WARNING. Transport failures and handshake timeouts log at ERROR.
Per-chunk detail is DEBUG only.

Output goes to stdout and, when the logs/ directory is writable, to a
size-rotated file.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from voice_relay.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "voice_relay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def configure_logging(level: Optional[str] = None, log_to_file: bool = True) -> logging.Logger:
    """
    Configure the relay logger with console and rotating file handlers.

    Calling this more than once replaces the previously attached handlers, so
    the CLI can reconfigure the level after startup.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable or INFO
        log_to_file: Whether to also write to logs/voice_relay.log

    Returns:
        logging.Logger: The configured logger instance
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file:
        try:
            LOG_DIR.mkdir(exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not set up file logging: {e}")

    # Keep relay records out of uvicorn's root handlers
    logger.propagate = False

    logger.info(f"Logging configured at level {level_name}")
    return logger
