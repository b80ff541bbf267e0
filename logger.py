"""Logging configuration for PureText.

One named logger for the whole package. Records go to a dated file under
config.LOG_DIR (unless PURETEXT_LOG_TO_FILE is off) and to stdout when a
terminal is attached, so piped CLI output stays clean.
"""

import logging
import sys
from datetime import datetime

import config

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logging() -> logging.Logger:
    """Build the puretext logger from config."""
    logger = logging.getLogger("puretext")
    level = getattr(logging, config.LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    # Re-importing must not stack handlers
    logger.handlers.clear()

    if config.LOG_TO_FILE:
        config.LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = config.LOG_DIR / f"puretext_{datetime.now().strftime('%Y-%m-%d')}.log"
        logger.addHandler(_handler(
            logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT, "%Y-%m-%d %H:%M:%S",
        ))

    if sys.stdout is not None and sys.stdout.isatty():
        logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level, CONSOLE_FORMAT, "%H:%M:%S"))

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


# Global logger instance
logger = setup_logging()
