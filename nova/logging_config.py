"""Loguru sink setup for the CLI entry points."""

import os
import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> <cyan>{name}</cyan> | {message}"


def setup_logging(level: str | None = None, verbose: bool = False) -> str:
    """
    Route nova's log output to stderr.

    The level comes from the argument, else ``NOVA_LOG_LEVEL`` / ``LOG_LEVEL``,
    else INFO. ``verbose`` forces DEBUG, which also logs reasoning prompts.
    Variable values in tracebacks are only shown at DEBUG.

    Returns:
        The level that was applied.
    """
    if verbose:
        level = "DEBUG"
    level = (level or os.environ.get("NOVA_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO").upper()

    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=level == "DEBUG",
    )
    return level
