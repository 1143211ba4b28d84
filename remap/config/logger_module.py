"""
Logging utilities for the ReMap pin pipeline.

Every component logs through the package logger ``remap`` so the
pipeline's output can be configured, or silenced, independently of the
host application's root logger.
"""

import logging
from pathlib import Path


LOGGER_NAME = "remap"

_CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
_FILE_FORMAT = '%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Set once initialize_logger has attached handlers
_logger_initialized = False


def get_logger() -> logging.Logger:
    """Return the package logger."""
    return logging.getLogger(LOGGER_NAME)


def initialize_logger(log_level: str = "INFO", log_file: str = "logs/remap.log") -> None:
    """
    Attach a console handler (INFO) and a file handler (DEBUG) to the
    package logger. Later calls are ignored.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file; parent directories are created
    """
    global _logger_initialized

    if _logger_initialized:
        return

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger = get_logger()
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))

    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    _logger_initialized = True
    logger.info(f"Logger initialized with level {log_level}, file: {log_file}")


def _emit(level: int, message: str) -> None:
    # stacklevel 3 attributes the record to the caller of log_*
    get_logger().log(level, message, stacklevel=3)


def log_debug(message: str) -> None:
    _emit(logging.DEBUG, message)


def log_info(message: str) -> None:
    """
    Log an info message.

    Args:
        message: Message to log
    """
    _emit(logging.INFO, message)


def log_warning(message: str) -> None:
    """
    Log a warning message.

    Args:
        message: Message to log
    """
    _emit(logging.WARNING, message)


def log_error(message: str) -> None:
    """
    Log an error message.

    Args:
        message: Message to log
    """
    _emit(logging.ERROR, message)
