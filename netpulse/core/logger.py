import os
import sys
from typing import Optional

from loguru import logger

from netpulse.core.constants import LOG_FILE

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(level: str = "INFO", log_file: Optional[str] = LOG_FILE):
    """
    Configure loguru handlers.

    Args:
        level: Console log level
        log_file: Rotating DEBUG log file, or None to skip file logging
    """
    logger.remove()  # Remove default handler

    # Add stderr handler only if available (not in windowed exe)
    if sys.stderr:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        logger.add(
            log_file,
            rotation="1 MB",
            retention="10 days",
            format=FILE_FORMAT,
            level="DEBUG",
            enqueue=True,
        )

    return logger


def shutdown_logging():
    """Flush queued records and drop all handlers. Call last during teardown."""
    logger.complete()
    logger.remove()
