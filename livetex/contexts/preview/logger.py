"""
Preview context logger with automatic [preview] prefix.
"""

from loguru import logger

CONTEXT_PREFIX = "[preview]"


def _log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")
