"""Logging setup."""

import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <8}</level> <cyan>{name}</cyan> {message}"


def setup_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
