"""
logger_config.py
----------------

Centralized logging configuration for the Talkify API.

Features:
- Colored console output (colorlog)
- Optional rotating log files (5 MB, 3 backups) with ANSI colors stripped
- Dedicated loggers for the application, HTTP requests, database and crypto
- key=value context fields appended to messages
- fatal() logs a critical error and terminates the process
"""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Any, Mapping, NoReturn, Optional

import colorlog

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOGGER = "talkify"
REQUEST_LOGGER = "talkify.requests"
DATABASE_LOGGER = "talkify.database"
CRYPTO_LOGGER = "talkify.crypto"


# ======================================================
# Formatters
# ======================================================
class NoColorFormatter(logging.Formatter):
    """Removes ANSI color codes for file logs."""

    def format(self, record):
        msg = super().format(record)
        return re.sub(r"\x1b\[[0-9;]*m", "", msg)


color_formatter = colorlog.ColoredFormatter(
    "%(log_color)s" + LOG_FORMAT,
    datefmt=DATE_FORMAT,
    log_colors={
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    },
)


# ======================================================
# Setup
# ======================================================
def setup_logger(
    name: str,
    filename: Optional[str] = None,
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Creates a logger with a colored console handler and, when log_dir is given,
    a rotating file handler. Calling it again for the same name only adjusts
    the level, so handlers are never duplicated.

    Args:
        name (str): Logical logger name.
        filename (str): Log file name inside log_dir.
        level (int): Minimum level.
        log_dir (str): Directory for rotating files; console only when None.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(color_formatter)
    logger.addHandler(console_handler)

    if log_dir and filename:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, filename),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(NoColorFormatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def init_logger(development: bool = True, level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configures every Talkify logger. Development mode logs at DEBUG,
    production at INFO, unless an explicit level name is given.
    """
    if level:
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = logging.DEBUG if development else logging.INFO

    setup_logger(REQUEST_LOGGER, "requests.log", resolved, log_dir)
    setup_logger(DATABASE_LOGGER, "database.log", resolved, log_dir)
    setup_logger(CRYPTO_LOGGER, "crypto.log", resolved, log_dir)
    return setup_logger(APP_LOGGER, "talkify.log", resolved, log_dir)


# ======================================================
# Loggers
# ======================================================
app_logger = logging.getLogger(APP_LOGGER)
request_logger = logging.getLogger(REQUEST_LOGGER)
database_logger = logging.getLogger(DATABASE_LOGGER)
crypto_logger = logging.getLogger(CRYPTO_LOGGER)


# ======================================================
# Structured helpers
# ======================================================
def format_fields(fields: Optional[Mapping[str, Any]]) -> str:
    """Renders context as ' key=value key=value' (empty when there is none)."""
    if not fields:
        return ""
    return " " + " ".join(f"{key}={value}" for key, value in fields.items())


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    logger.info(f"{message}{format_fields(fields)}")


def log_error(logger: logging.Logger, message: str, error: Optional[BaseException] = None, **fields: Any) -> None:
    if error is not None:
        fields = {**fields, "error": error}
    logger.error(f"{message}{format_fields(fields)}")


def fatal(message: str, error: Optional[BaseException] = None, fields: Optional[Mapping[str, Any]] = None) -> NoReturn:
    """Logs a critical startup failure and exits with status 1."""
    context = dict(fields or {})
    if error is not None:
        context["error"] = error
    app_logger.critical(f"{message}{format_fields(context)}")
    raise SystemExit(1)
