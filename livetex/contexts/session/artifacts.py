"""
Artifact lifecycle management.

ArtifactLifecycle is the only owner of artifact handles. It allocates a handle
for each winning compile result, swaps it in as the live handle once it is
known to be usable, and releases the previous one in the same step. At most
two handles are allocated at any moment (old + new, during promote), settling
to one after promote (zero before the first successful compile).
"""

import itertools
from typing import Callable, List, Optional, Protocol

from livetex.contexts.session.logger import _log_debug, _log_warning
from livetex.utils.pdf_processing import is_readable_pdf


class Cancellable(Protocol):
    def cancel(self) -> object: ...


class ArtifactReleasedError(RuntimeError):
    """Raised when a released handle is read."""


class ArtifactDecodeError(ValueError):
    """Raised by promote when the new artifact fails validation."""


class ArtifactHandle:
    """
    Memory-backed reference to a rendered artifact.

    Only ArtifactLifecycle creates and releases handles; everyone else reads.
    """

    def __init__(self, handle_id: int, data: bytes, sequence_number: int):
        self.handle_id = handle_id
        self.sequence_number = sequence_number
        self.size = len(data)
        self._data: Optional[bytes] = bytes(data)

    @property
    def url(self) -> str:
        return f"artifact://{self.handle_id}"

    @property
    def released(self) -> bool:
        return self._data is None

    def read(self) -> bytes:
        if self._data is None:
            raise ArtifactReleasedError(f"Artifact {self.url} has been released")
        return self._data

    def _release(self) -> None:
        self._data = None

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self.size} bytes"
        return f"ArtifactHandle({self.url}, seq={self.sequence_number}, {state})"


class ArtifactLifecycle:
    """
    Creates, promotes and releases artifact handles.

    Args:
        validator: Called with the new artifact's bytes in promote; a falsy
            return rejects it. None accepts everything. Defaults to checking the
            bytes open as a PDF with at least one page.
    """

    def __init__(self, validator: Optional[Callable[[bytes], bool]] = is_readable_pdf):
        self.validator = validator
        self._live: Optional[ArtifactHandle] = None
        self._allocated: List[ArtifactHandle] = []
        self._pending: List[Cancellable] = []
        self._ids = itertools.count(1)
        self.released_count = 0
        self.closed = False

    @property
    def live(self) -> Optional[ArtifactHandle]:
        return self._live

    @property
    def allocated_count(self) -> int:
        """Handles allocated and not yet released."""
        return len(self._allocated)

    def publish(self, data: bytes, sequence_number: int) -> ArtifactHandle:
        """
        Allocate a handle for data. The previously live handle stays live.

        Raises:
            RuntimeError: If called after release_all()
        """
        if self.closed:
            raise RuntimeError("Cannot publish after release_all()")

        handle = ArtifactHandle(next(self._ids), data, sequence_number)
        self._allocated.append(handle)
        _log_debug(f"Published {handle!r}")
        return handle

    def promote(self, handle: ArtifactHandle) -> ArtifactHandle:
        """
        Make handle the live artifact and release the previous one.

        The previous handle is only released once handle has passed
        validation, so the UI never loses its picture to a bad artifact.

        Returns:
            The newly live handle

        Raises:
            ArtifactDecodeError: If handle fails validation (it is released, old stays live)
            ValueError: If handle was not published by this lifecycle or is released
        """
        if handle not in self._allocated:
            raise ValueError(f"{handle!r} is not an allocated handle of this lifecycle")

        if self.validator is not None and not self.validator(handle.read()):
            self._release(handle)
            _log_warning(f"Rejected {handle!r}: artifact failed validation")
            raise ArtifactDecodeError(f"Artifact for request {handle.sequence_number} is unreadable")

        previous = self._live
        self._live = handle
        if previous is not None and previous is not handle:
            self._release(previous)
        _log_debug(f"Promoted {handle!r}")
        return handle

    def track(self, pending: Cancellable) -> None:
        """Register a timer or task to be cancelled by release_all()."""
        self._pending = [p for p in self._pending if not _is_done(p)]
        self._pending.append(pending)

    def release_all(self) -> None:
        """Release every handle and cancel tracked timers/tasks. Safe to call repeatedly."""
        for pending in self._pending:
            pending.cancel()
        self._pending.clear()

        for handle in list(self._allocated):
            self._release(handle)
        self._live = None

        if not self.closed:
            _log_debug("Released all artifacts")
        self.closed = True

    def _release(self, handle: ArtifactHandle) -> None:
        if handle in self._allocated:
            self._allocated.remove(handle)
            handle._release()
            self.released_count += 1


def _is_done(pending: Cancellable) -> bool:
    done = getattr(pending, "done", None)
    if callable(done):
        return done()
    cancelled = getattr(pending, "cancelled", None)
    return callable(cancelled) and cancelled()
