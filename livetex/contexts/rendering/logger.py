"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[render]"


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_compilation_start(engine: str, scratch_dir, num_passes: int, source_chars: int) -> None:
    """Log start of compilation with context."""
    _log_info(f"Starting compilation with {engine} ({source_chars} chars)")
    _log_debug(f"  Scratch: {scratch_dir}")
    _log_debug(f"  Passes: {num_passes}")


def log_compilation_result(
    outcome,  # CompileOutcome
    elapsed_time: float,
    verbose: bool = False,
    stdout: str = "",
    stderr: str = "",
) -> None:
    """
    Log compilation outcome with diagnostics.

    Args:
        outcome: CompileSuccess or CompileFailure
        elapsed_time: Time taken to compile
        verbose: Show detailed warnings/errors and raw engine output
        stdout: Combined engine stdout
        stderr: Combined engine stderr
    """
    if outcome.ok:
        _log_success(
            f"Compilation succeeded: {len(outcome.artifact)} bytes, "
            f"{len(outcome.warnings)} warnings ({elapsed_time:.2f}s)"
        )
        if outcome.warnings:
            warning_limit = 10 if verbose else 3
            for i, warn in enumerate(outcome.warnings[:warning_limit], 1):
                _log_debug(f"  Warning {i}: {warn}")
            if len(outcome.warnings) > warning_limit:
                _log_debug(f"  ... and {len(outcome.warnings) - warning_limit} more warnings")
    else:
        _log_error(f"Compilation failed ({outcome.reason.value}, {elapsed_time:.2f}s)")
        error_limit = 10 if verbose else 5
        for i, err in enumerate(outcome.errors[:error_limit], 1):
            _log_error(f"  Error {i}: {err}")
        if len(outcome.errors) > error_limit:
            _log_error(f"  ... and {len(outcome.errors) - error_limit} more errors")

    # Raw output bypasses the format template so multi-line output stays intact
    if verbose or not outcome.ok:
        if stdout:
            logger.opt(raw=True).debug(f"\n{'=' * 80}\nENGINE STDOUT:\n{'=' * 80}\n{stdout}\n")
        if stderr:
            logger.opt(raw=True).debug(f"\n{'=' * 80}\nENGINE STDERR:\n{'=' * 80}\n{stderr}\n")
