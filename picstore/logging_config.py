"""
Application logging configuration.

This module provides unified logging configuration for picstore. Storage
operations log which key and size they touched so failures can be traced
back to a single asset.
"""
import logging
import sys

from picstore.config import settings


def setup_logging() -> logging.Logger:
    """
    Configure and return the picstore logger.

    The logger outputs to stdout with a structured format including:
    - Timestamp
    - Logger name
    - Log level
    - Message

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger("picstore")
    logger.setLevel(settings.LOG_LEVEL.upper())

    # Prevent duplicate handlers if called multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
