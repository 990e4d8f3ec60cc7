"""
Logging Setup
=============
Package-level logging for the forecaster.

Modules log through ``logging.getLogger(__name__)`` and propagate into the
``forecaster`` logger configured here. Console output goes to stderr so the
CLI can print its JSON result on stdout.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from .config import LoggingConfig

PACKAGE_LOGGER = "forecaster"
LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Loggers already configured by setup_logger
_configured: Dict[str, logging.Logger] = {}


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def _file_handler(log_file: str, max_size_mb: int, backup_count: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_size_mb * 1024 * 1024, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_formatter())
    return handler


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 3,
    console: bool = True,
) -> logging.Logger:
    """
    Configure ``name`` once; later calls return the same logger untouched.

    Args:
        name: Logger name, normally the package root
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Rotating log file; its directory is created if missing
        max_size_mb: Size at which the file rotates
        backup_count: Rotated files kept
        console: Attach a stderr handler

    Returns:
        Configured logger

    Raises:
        ValueError: Unknown level name
    """
    if name in _configured:
        return _configured[name]

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    logger.handlers = []
    if console:
        logger.addHandler(_console_handler(numeric_level))
    if log_file:
        logger.addHandler(_file_handler(log_file, max_size_mb, backup_count))
    logger.propagate = False

    _configured[name] = logger
    return logger


def setup_from_config(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the package logger from the ``logging`` config section."""
    config = config or LoggingConfig()
    return setup_logger(
        PACKAGE_LOGGER,
        level=config.level,
        log_file=config.file,
        max_size_mb=config.max_size_mb,
        backup_count=config.backup_count,
    )


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """The configured logger for ``name``, else the plain stdlib one."""
    return _configured.get(name) or logging.getLogger(name)


def silence_external_loggers(level: int = logging.WARNING):
    for name in ('numexpr', 'asyncio'):
        logging.getLogger(name).setLevel(level)
