"""Logging configuration for the flashpair engine."""

import logging
import sys
from typing import Union


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Get a configured logger instance.

    The handler is installed once on the top-level package logger; module loggers
    (``flashpair.core.pool`` etc.) propagate to it, so a single ``set_log_level``
    call on the package name controls the whole engine.

    Args:
        name: Logger name (usually the module's ``__name__``)
        level: Logging level applied when the package logger is first configured

    Returns:
        Logger for ``name``.
    """
    root = logging.getLogger(name.split(".", 1)[0])

    # Only configure if not already configured
    if not root.handlers:
        root.setLevel(level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)

        # Prevent propagation to root logger
        root.propagate = False

    return logging.getLogger(name)


def set_log_level(name: str, level: Union[int, str]) -> None:
    """Set log level for a logger and its handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
