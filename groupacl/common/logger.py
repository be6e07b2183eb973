"""Logging infrastructure for groupacl.

Every component logs under the ``groupacl`` namespace, so configuring
that one logger (``configure_logging``) sets up output for the whole
package. Console and rotating file output use ISO 8601 timestamps.
"""

import logging
import logging.handlers
import os
from typing import Optional

from .config import LoggingConfig

LOGGER_PREFIX = "groupacl"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def qualified_name(name: str) -> str:
    """Place ``name`` under the ``groupacl`` namespace unless it already is."""
    if name == LOGGER_PREFIX or name.startswith(LOGGER_PREFIX + "."):
        return name
    return f"{LOGGER_PREFIX}.{name}"


def _parse_level(level: str) -> int:
    level_upper = level.upper()
    if level_upper not in LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: {', '.join(LOG_LEVELS)}"
        )
    return getattr(logging, level_upper)


def setup_logger(
    name: str = LOGGER_PREFIX,
    log_dir: str = "/var/log/groupacl",
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Set up a groupacl logger with console and optional file output.

    Calling it again for the same logger only updates the level.

    Args:
        name: Component name, placed under the ``groupacl`` namespace
        log_dir: Directory for log files
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string
        date_format: Custom date format string (ISO 8601 by default)
        file_logging: Write to ``<log_dir>/<logger name>.log``
        console_logging: Write to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(qualified_name(name))
    logger.setLevel(_parse_level(level))

    # Already configured
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        log_format or DEFAULT_FORMAT, datefmt=date_format or DEFAULT_DATE_FORMAT
    )

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{logger.name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Configure the package logger from the ``logging`` config section."""
    return setup_logger(
        LOGGER_PREFIX,
        log_dir=config.dir,
        level=config.level,
        file_logging=config.file_logging,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a component logger in the groupacl namespace.

    Args:
        name: Component name

    Returns:
        Logger instance
    """
    return logging.getLogger(qualified_name(name))
