"""Common utilities for groupacl."""

from .logger import configure_logging, get_logger, setup_logger
from .config import load_config, load_typed_config

__all__ = [
    "configure_logging",
    "get_logger",
    "load_config",
    "load_typed_config",
    "setup_logger",
]
