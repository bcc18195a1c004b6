"""Logging configuration helpers."""
from __future__ import annotations

import sys
from typing import Any

from loguru import logger


def configure_logging(level: str = "INFO", sink: Any = sys.stderr) -> None:
    """Configure loguru with a friendly default sink."""
    logger.remove()
    logger.add(
        sink=sink,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
