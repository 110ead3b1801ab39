"""Exceptions raised inside the compiler adapter, converted to outcomes at its boundary."""

from typing import List, Optional


class CompilerServiceError(Exception):
    """
    Base class for per-request compile failures.

    Fatal to the request, never to the session.

    Attributes:
        message: Short description
        diagnostic_text: Raw error stream of the external tool
        errors: Errors parsed from the engine log
    """

    def __init__(
        self,
        message: str,
        diagnostic_text: str = "",
        errors: Optional[List[str]] = None,
    ):
        self.message = message
        self.diagnostic_text = diagnostic_text
        self.errors = errors or []
        super().__init__(message)


class ProcessLaunchFailure(CompilerServiceError):
    """The engine binary could not be started, or exceeded the wall-clock timeout."""


class CompilationError(CompilerServiceError):
    """The engine ran but reported a problem with the source."""


class OutputMissing(CompilationError):
    """The engine exited successfully but produced no artifact."""
