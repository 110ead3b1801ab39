"""
Session context logger.

Provides logging interface for the session context with automatic [session] prefix.
All session modules should import from this module, not from loguru directly.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from livetex.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[session]"


def setup_session_logger(log_dir: Optional[Path], engine: str, debounce_ms: int) -> Optional[Path]:
    """
    Setup logger for a live editing session.

    Args:
        log_dir: Directory for this session's log file (None: console only)
        engine: TeX engine recorded in the provenance header
        debounce_ms: Debounce window recorded in the provenance header

    Returns:
        Path to log file, or None
    """
    return _setup_logger(
        context_name="session",
        log_dir=log_dir,
        extra_provenance={"LaTeX compiler": engine, "Debounce window": f"{debounce_ms}ms"},
    )


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_transition(before, after, event) -> None:
    """Log a state machine transition at debug level (noop when the state is unchanged)."""
    if before != after:
        _log_debug(f"{before.name} -> {after.name} on {type(event).__name__}")


def log_result_applied(result, superseded: bool) -> None:
    """Log a result that became the visible state."""
    suffix = " (a newer edit is pending)" if superseded else ""
    if result.name == "success":
        _log_success(f"Request {result.sequence_number} rendered{suffix}")
    else:
        _log_error(f"Request {result.sequence_number} failed: {result.reason.value}{suffix}")
        first_line = result.diagnostic_text.strip().splitlines()[:1]
        if first_line:
            _log_debug(f"  {first_line[0]}")


def log_compiler_crash(error: Exception, sequence_number: Optional[int], where: str = "compiler") -> None:
    """Log an unexpected exception with traceback; the caller converts it to a Failure."""
    request = f" for request {sequence_number}" if sequence_number is not None else ""
    logger.opt(exception=error).error(f"{CONTEXT_PREFIX} Unexpected error in {where}{request}")
