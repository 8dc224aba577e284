"""Logging configuration for the pywia package.

This module provides the package logger and helpers to change its level or to
mirror its output into a rotating log file. By default the logger writes to
stdout with a format that includes the logger name, log level, and message.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

_formatter = logging.Formatter("%(name)s | %(levelname)s | %(message)s")


def _configure_default_logging() -> logging.Logger:
    """Attach a stdout handler at INFO level to the package logger.

    Called once when this module is imported. Handlers are only added if the
    logger has none yet, so re-imports do not duplicate output.
    """
    logger = logging.getLogger(__package__)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        logger.propagate = False
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter)
        console_handler.setLevel(logging.INFO)
        logger.addHandler(console_handler)

    return logger


logger = _configure_default_logging()
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def set_log_level(log_level: LogLevel) -> None:
    """Set the level of the package logger and all of its handlers.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.

    Example:
        >>> set_log_level("WARNING")
        >>> logger.info("Resampled 3 channels")  # suppressed
    """
    numeric_level: int = int(getattr(logging, log_level))
    if logger.level == numeric_level:
        return
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)


def set_log_file(log_file: Path, log_level: LogLevel = "DEBUG") -> None:
    """Write package log records to a rotating file.

    An existing file handler is closed and replaced, console handlers are left
    untouched.

    Args:
        log_file: Path to the log file. Parent directories are created.
        log_level: Level for the file handler.

    Example:
        >>> set_log_file(Path("logs/wia.log"), log_level="INFO")
    """
    numeric_level: int = int(getattr(logging, log_level))
    log_file.parent.mkdir(parents=True, exist_ok=True)

    for h in list(logger.handlers):
        if isinstance(h, logging.FileHandler):
            h.close()
            logger.removeHandler(h)

    file_handler = RotatingFileHandler(log_file, maxBytes=100_000_000, backupCount=3)
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(_formatter)
    logger.addHandler(file_handler)
