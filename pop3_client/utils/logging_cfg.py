"""
Logging setup for the POP3 client.

One rotating log file under the client home directory records everything at
the configured level; the console only shows problems unless debug mode is
on. Passwords never reach these handlers: callers log addresses and user
names only.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from pop3_client import config


FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Rotation: 10 MB per file, five old files kept
MAX_LOG_SIZE = 10 * 1024 * 1024
BACKUP_COUNT = 5

# Libraries underneath the client that are too chatty below WARNING
QUIET_LOGGERS = ("poplib", "dotenv")


def get_log_file() -> Path:
    """Return the path of the application log file."""
    return config.CLIENT_HOME / "logs" / "app.log"


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=str(log_file),
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler(debug: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    return handler


def setup_logging(debug: bool = False) -> Path:
    """
    Route all client logging to the log file and the console.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        debug: Log at DEBUG (file and console) instead of INFO.

    Returns:
        The log file path.
    """
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_file_handler(log_file, level))
    root_logger.addHandler(_console_handler(debug))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"POP3 client logging at {logging.getLevelName(level)} to {log_file}"
    )
    return log_file


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (usually __name__). If None, returns root logger.
    """
    return logging.getLogger(name)
