"""
Session Context

Responsibilities:
- Owns the document body being edited and the debounce timer
- Issues sequence-numbered compile requests and discards stale results
- Owns the live artifact handle and releases replaced ones
- Exposes the current {pending | artifact | error} view to the UI

Owns: session state machine, artifact handles
Never: Talks to the TeX engine directly (goes through a CompilerService)
"""

from livetex.contexts.session.artifacts import (
    ArtifactDecodeError,
    ArtifactHandle,
    ArtifactLifecycle,
    ArtifactReleasedError,
)
from livetex.contexts.session.orchestrator import CompileOrchestrator
from livetex.contexts.session.state import (
    PENDING,
    CompileRequest,
    CompileResult,
    Compiling,
    Debouncing,
    Failure,
    Idle,
    Pending,
    SessionState,
    Success,
    ViewState,
)

__all__ = [
    "PENDING",
    "ArtifactDecodeError",
    "ArtifactHandle",
    "ArtifactLifecycle",
    "ArtifactReleasedError",
    "CompileOrchestrator",
    "CompileRequest",
    "CompileResult",
    "Compiling",
    "Debouncing",
    "Failure",
    "Idle",
    "Pending",
    "SessionState",
    "Success",
    "ViewState",
]
