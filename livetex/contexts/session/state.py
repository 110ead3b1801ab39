"""
Session state machine types.

The orchestrator's position in its cycle and the result currently shown are
two orthogonal tagged variants:

    SessionState  = Idle | Debouncing | Compiling
    CompileResult = Pending | Success | Failure

Compiling always carries the request it is waiting on, so a session cannot be
"compiling" with nothing outstanding.
"""

from dataclasses import dataclass
from typing import Optional, Union

from livetex.contexts.rendering.compiler import CompileOutcome, FailureReason
from livetex.contexts.session.artifacts import ArtifactHandle


@dataclass(frozen=True)
class CompileRequest:
    """Immutable snapshot of the source taken when a compile is triggered."""

    source_snapshot: str
    sequence_number: int


# Session states


@dataclass(frozen=True)
class Idle:
    """Nothing scheduled; the shown result matches the latest request."""

    name = "idle"


@dataclass(frozen=True)
class Debouncing:
    """
    Waiting for the edit stream to go quiet.

    Attributes:
        generation: Timer generation; a timer firing for an older generation is ignored
    """

    generation: int

    name = "debouncing"


@dataclass(frozen=True)
class Compiling:
    """Waiting on the compiler for request."""

    request: CompileRequest

    name = "compiling"


SessionState = Union[Idle, Debouncing, Compiling]


# Compile results


@dataclass(frozen=True)
class Pending:
    """No compile has completed yet."""

    name = "pending"


PENDING = Pending()


@dataclass(frozen=True)
class Success:
    artifact_bytes: bytes
    sequence_number: int

    name = "success"


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    diagnostic_text: str
    sequence_number: int

    name = "failure"


CompileResult = Union[Pending, Success, Failure]


# Events dispatched into the state machine


@dataclass(frozen=True)
class EditReceived:
    source: str


@dataclass(frozen=True)
class DebounceElapsed:
    generation: int


@dataclass(frozen=True)
class CompileFinished:
    sequence_number: int
    outcome: CompileOutcome


SessionEvent = Union[EditReceived, DebounceElapsed, CompileFinished]


@dataclass(frozen=True)
class ViewState:
    """
    Snapshot handed to observers.

    After a Failure, artifact still points at the last good artifact (if any),
    so the UI can show both the error and the last good render.

    Attributes:
        state: Where the session is in its cycle
        result: Most recent winning result
        artifact: Live artifact handle, None before the first success
        persistence_warning: Last save failure message, cleared by the next successful save
    """

    state: SessionState
    result: CompileResult
    artifact: Optional[ArtifactHandle] = None
    persistence_warning: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return isinstance(self.result, Failure)

    @property
    def is_compiled(self) -> bool:
        """False only for the neutral "not yet compiled" state."""
        return not isinstance(self.result, Pending) or self.artifact is not None
