"""
AVONLEA Logging Configuration

Centralized logging for the installation:
- Console output under the ``avonlea`` logger namespace
- Optional rotating file handler for long unattended runs
- Convenience helpers (log_exception, log_timing)

Usage:
    from avonlea.logging_config import setup_logging, get_logger, log_exception, log_timing

    # Initialize logging at startup
    setup_logging(log_level="INFO", log_file="avonlea.log")

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("Moon updated")

    # Log exceptions with full traceback
    try:
        source.get_condition()
    except Exception as e:
        log_exception(logger, "Weather poll failed", e)

    # Time a block of code
    with log_timing(logger, "moon_update"):
        installation.update_moon_data()
"""

import logging
import sys
import time
import traceback
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional, TextIO

# Module-level constants
ROOT_LOGGER_NAME = "avonlea"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FORMAT_NO_TIME = "%(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5MB
DEFAULT_BACKUP_COUNT = 3

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str | Path] = None,
    enable_timestamps: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure logging for the AVONLEA installation.

    Sets up the ``avonlea`` logger with a console handler and an optional
    rotating file handler. Safe to call more than once; previous handlers
    are replaced rather than accumulated.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file. Parent directories are created.
        enable_timestamps: If False, omit the timestamp column (useful when
            the host already stamps console output).
        stream: Console stream (default: sys.stdout). Commands that print
            results to stdout pass sys.stderr.
    """
    level = LOG_LEVELS.get(log_level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_format = DEFAULT_LOG_FORMAT if enable_timestamps else DEFAULT_LOG_FORMAT_NO_TIME

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format, DEFAULT_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the avonlea namespace.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger inheriting the avonlea configuration
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    level: int = logging.ERROR,
    include_traceback: bool = True,
) -> None:
    """Log an exception with optional full traceback.

    Args:
        logger: Logger instance to use
        message: Context message describing what operation failed
        exc: The exception that was raised
        level: Log level to use (default: ERROR)
        include_traceback: If True, append the formatted traceback
    """
    exc_type = type(exc).__name__
    extra = {
        "exception_type": exc_type,
        "exception_message": str(exc),
    }

    if include_traceback:
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.log(level, f"{message}: [{exc_type}] {exc}\n{tb}", extra=extra)
    else:
        logger.log(level, f"{message}: [{exc_type}] {exc}", extra=extra)


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    warn_threshold_sec: Optional[float] = None,
) -> Generator[None, None, None]:
    """Context manager logging how long an operation took.

    Args:
        logger: Logger instance to use
        operation: Name of the operation being timed
        level: Log level for the timing message (default: DEBUG)
        warn_threshold_sec: If set, emit WARNING when the duration exceeds it

    Example:
        with log_timing(logger, "moon_update", warn_threshold_sec=0.05):
            installation.update_moon_data()
    """
    start_time = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start_time
        extra = {"operation": operation, "elapsed_seconds": round(elapsed, 6)}

        if warn_threshold_sec is not None and elapsed > warn_threshold_sec:
            logger.warning(
                f"{operation} completed in {elapsed:.4f}s "
                f"(exceeded {warn_threshold_sec}s threshold)",
                extra=extra,
            )
        else:
            logger.log(level, f"{operation} completed in {elapsed:.4f}s", extra=extra)
