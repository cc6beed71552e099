"""Loguru configuration for the API server."""

import sys
from typing import Optional

from loguru import logger

from .config import settings


def setup_logging(level: Optional[str] = None) -> None:
    """Route all log output to stderr at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
        ),
    )
