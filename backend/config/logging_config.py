"""Logging configuration for the table data engine."""
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:{line} - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"

SESSION_ID = datetime.now().strftime("%Y%m%d_%H%M%S")


def configure_logging(log_dir: Optional[Union[str, Path]] = None, level: Optional[str] = None):
    """
    Configure Loguru logging.

    Console output goes to stderr at LOG_LEVEL (or ``level``); setting
    LOG_FILTER restricts the console to modules whose name contains it, at
    DEBUG. When a log directory is given, or LOG_DIR is set, a rotating
    session log and an error-only log are written there as well.
    """
    logger.remove()

    log_filter = os.getenv("LOG_FILTER", "")
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    if log_filter:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=CONSOLE_FORMAT,
            filter=lambda record: log_filter in record["name"]
        )
    else:
        logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    log_dir = log_dir or os.getenv("LOG_DIR")
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / f"tabledata_{SESSION_ID}.log",
            rotation="5 MB",
            retention=5,
            level="DEBUG",
            format=FILE_FORMAT
        )

        logger.add(
            log_dir / "error.log",
            rotation="10 MB",
            retention="14 days",
            level="ERROR",
            format=FILE_FORMAT
        )

    return logger
