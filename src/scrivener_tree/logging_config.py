"""Logging configuration for scrivener-tree."""

import sys
from pathlib import Path

from loguru import logger

_VERBOSE_FORMAT = "{time:HH:mm:ss.SSS} {level.icon} {name}:{line} {message}"


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Send logs to stderr, and to log_file as well when given.

    The MCP server talks over stdout, so nothing is ever logged there.
    """
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format=_VERBOSE_FORMAT if verbose else "{level.icon} {message}")
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level="DEBUG", rotation="1 MB", retention=3, encoding="utf-8")
