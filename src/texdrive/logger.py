"""
texdrive logger.

Thin loguru wrapper that prefixes every message with [texdrive].
Library modules import the helpers from here; the CLI calls setup_logger().
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from texdrive.models import Diagnostic

CONTEXT_PREFIX = "[texdrive]"

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """
    Configure loguru sinks for a texdrive run.

    Args:
        level: Minimum level written to stderr
        log_file: Optional file that receives everything from DEBUG up
    """
    logger.remove()

    for level_name, color in LEVEL_COLORS.items():
        logger.level(level_name, color=color)

    logger.add(
        sys.stderr,
        format="<level>{level: <7}</level> | <level>{message}</level>",
        level=level.upper(),
        colorize=True,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}",
            level="DEBUG",
        )


def log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_diagnostic(diagnostic: Diagnostic) -> None:
    """Log a Diagnostic with its source location."""
    logger.error(
        f"{CONTEXT_PREFIX} {diagnostic.summary()} "
        f"[{diagnostic.code}] at {diagnostic.location()}"
    )
