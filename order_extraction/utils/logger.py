"""
Logging for order extraction.

Every module logs through a child of the ``order_extraction`` logger, so a
single ``setup_logger_from_config()`` call in the entry point decides where
pipeline messages go: coloured lines on stderr and, when enabled in
settings, a size-rotated log file.

    logger = get_logger(__name__)
    logger.info("Parsed 4 line items")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "order_extraction"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class ColoredFormatter(logging.Formatter):
    """Wraps each console line in the colour of its level."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, '')
        return f"{color}{super().format(record)}{Style.RESET_ALL}"


def setup_logger(
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Attach handlers to the ``order_extraction`` logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Level name applied to the logger and its handlers.
        log_format: Record format; a timestamp | level | module | message
            layout when omitted.
        date_format: ``strftime`` format for timestamps.
        log_file: Rotating log file; no file output when None.
        max_bytes: Rotation size of the log file.
        backup_count: Rotated files kept.
        colorize: Colour console lines by level.

    Returns:
        The ``order_extraction`` logger.
    """
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT
    numeric_level = getattr(logging, level.upper())

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    app_logger.handlers.clear()

    # stderr keeps stdout free for JSON results
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    formatter_cls = ColoredFormatter if colorize else logging.Formatter
    console.setFormatter(formatter_cls(log_format, datefmt=date_format))
    app_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        rotating = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        rotating.setLevel(numeric_level)
        rotating.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        app_logger.addHandler(rotating)

    app_logger.propagate = False
    app_logger.debug(f"Logging configured at {level.upper()}")
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Child of the ``order_extraction`` logger for ``name``."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Configure logging from the ``logging.*`` settings."""
    from config import get_config

    log_file = get_config("logging.file.path") if get_config("logging.file.enabled", False) else None

    return setup_logger(
        level=get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", DEFAULT_MAX_BYTES),
        backup_count=get_config("logging.file.backup_count", 5),
        colorize=get_config("logging.console.colorize", True)
    )
