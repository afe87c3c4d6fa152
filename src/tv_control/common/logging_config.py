"""
TV Control - Centralized Logging Configuration

Provides consistent logging setup for the installer and the dispatcher.
Every record goes to stderr and, when a log file is given, to that
persistent file as well.
"""

import logging
from logging.handlers import WatchedFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%m-%d-%Y %H:%M:%S'
DEFAULT_LOG_LEVEL = logging.INFO


def setup_service_logging(
    service_name: str,
    log_file: Optional[Path] = None,
    level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT
) -> logging.Logger:
    """
    Setup logging for a TV Control entry point.

    Args:
        service_name: Name of the entry point (used as logger name, e.g., 'tv-control')
        log_file: Optional persistent log file. A WatchedFileHandler is used so
                  logrotate can move the file underneath us.
        level: Logging level (default INFO)
        log_format: Log format string (uses default if not specified)

    Returns:
        Configured logger instance

    Example:
        logger = setup_service_logging('tv-control', paths.log_file)
        log_service_start(logger, 'TV Control Dispatcher')
    """
    logging.basicConfig(level=level, format=log_format, datefmt=DEFAULT_DATE_FORMAT)

    if log_file is not None:
        add_log_file(log_file, level=level, log_format=log_format)

    return logging.getLogger(service_name)


def add_log_file(
    log_file: Path,
    level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT
) -> None:
    """Attach a file handler for log_file to the root logger, once."""
    log_file = Path(log_file)
    root_logger = logging.getLogger()

    for handler in root_logger.handlers:
        if isinstance(handler, WatchedFileHandler) and Path(handler.baseFilename) == log_file.resolve():
            return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = WatchedFileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(log_format, datefmt=DEFAULT_DATE_FORMAT))
    root_logger.addHandler(file_handler)
    if root_logger.level > level or root_logger.level == logging.NOTSET:
        root_logger.setLevel(level)


def log_service_start(logger: logging.Logger, service_name: str) -> None:
    """
    Log the standard startup banner.

    Args:
        logger: Logger instance to use
        service_name: Human-readable name for the banner
    """
    logger.info("=" * 60)
    logger.info(f"{service_name} Starting")
    logger.info("=" * 60)
