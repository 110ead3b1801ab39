"""
Compile Orchestration

Turns a stream of edit events into a correctly sequenced stream of compiles.

Every resumption point (an edit, the debounce timer firing, a compile
finishing) is dispatched as a single event into one state machine:

    Idle        --edit-->            Debouncing
    Debouncing  --edit-->            Debouncing (timer restarted)
    Debouncing  --timer elapsed-->   Compiling  (request N issued)
    Compiling   --edit-->            Debouncing (request N keeps running)
    Compiling   --N finished-->      Idle       (result N shown)

A finished request only wins if its sequence number is the highest issued so
far; anything older is discarded no matter when it arrives. In-flight compiles
are never cancelled while the session is open.
"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Set

from livetex.config import LiveTexSettings
from livetex.contexts.documents.store import (
    DocumentNotFoundError,
    DocumentStore,
    PersistenceFailure,
)
from livetex.contexts.rendering.compiler import (
    CompileFailure,
    CompileOutcome,
    CompilerService,
    FailureReason,
)
from livetex.contexts.session.artifacts import ArtifactDecodeError, ArtifactLifecycle
from livetex.contexts.session.logger import (
    _log_debug,
    _log_info,
    _log_warning,
    log_compiler_crash,
    log_result_applied,
    log_transition,
)
from livetex.contexts.session.state import (
    PENDING,
    CompileFinished,
    CompileRequest,
    CompileResult,
    Compiling,
    DebounceElapsed,
    Debouncing,
    EditReceived,
    Failure,
    Idle,
    SessionEvent,
    SessionState,
    Success,
    ViewState,
)
from livetex.utils.event_logging import log_session_event

Observer = Callable[[ViewState], None]


class CompileOrchestrator:
    """
    Debounces edits, issues compile requests and decides which result wins.

    Must be driven from a running asyncio event loop.

    Args:
        compiler: Service producing artifacts from source text
        lifecycle: Owner of artifact handles (default: PDF-validating lifecycle)
        store: Document store saved to before each compile (None: no persistence)
        debounce_s: Quiet period after the last edit before compiling
        document_id: Existing document to save into (None: created on first save)
        title: Document title passed to the store
        show_superseded_results: Show a result that lands after a newer edit
            cycle has started (True), or drop it and wait for the newer cycle (False)
        event_log: JSON Lines session event log (None: disabled)
    """

    def __init__(
        self,
        compiler: CompilerService,
        lifecycle: Optional[ArtifactLifecycle] = None,
        store: Optional[DocumentStore] = None,
        debounce_s: float = 0.75,
        document_id: Optional[str] = None,
        title: Optional[str] = None,
        show_superseded_results: bool = True,
        event_log: Optional[Path] = None,
    ):
        if debounce_s < 0:
            raise ValueError(f"debounce_s must be non-negative, got: {debounce_s}")

        self.compiler = compiler
        self.lifecycle = lifecycle if lifecycle is not None else ArtifactLifecycle()
        self.store = store
        self.debounce_s = debounce_s
        self.document_id = document_id
        self.title = title
        self.show_superseded_results = show_superseded_results
        self.event_log = Path(event_log) if event_log else None

        self.highest_issued = 0
        self.stale_discarded = 0

        self._source = ""
        self._state: SessionState = Idle()
        self._result: CompileResult = PENDING
        self._persistence_warning: Optional[str] = None
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._observers: List[Observer] = []
        self._idle = asyncio.Event()
        self._save_lock = asyncio.Lock()
        self._idle.set()
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        compiler: CompilerService,
        settings: LiveTexSettings,
        store: Optional[DocumentStore] = None,
        **kwargs,
    ) -> "CompileOrchestrator":
        event_log = settings.session_events_file
        return cls(
            compiler,
            store=store,
            debounce_s=settings.debounce_s,
            show_superseded_results=settings.show_superseded_results,
            event_log=Path(event_log) if event_log else None,
            **kwargs,
        )

    # Public operations

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> CompileResult:
        return self._result

    @property
    def source(self) -> str:
        return self._source

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def view(self) -> ViewState:
        return ViewState(
            state=self._state,
            result=self._result,
            artifact=self.lifecycle.live,
            persistence_warning=self._persistence_warning,
        )

    def edit(self, source: str) -> None:
        """Record the new document body and (re)start the debounce window."""
        self._dispatch(EditReceived(source))

    def compile_now(self) -> Optional[CompileRequest]:
        """
        Compile the current source immediately, skipping any remaining debounce window.

        Returns:
            The issued request, or None if the session is closed
        """
        if self._closed:
            return None
        self._cancel_timer()
        self._generation += 1
        self._dispatch(DebounceElapsed(self._generation))
        return self._state.request if isinstance(self._state, Compiling) else None

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Call observer with a ViewState whenever the visible state changes.

        Returns:
            Function that removes the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def wait_idle(self) -> ViewState:
        """Wait until the session returns to Idle and return the view at that point."""
        while not (self._closed or isinstance(self._state, Idle)):
            await self._idle.wait()
        return self.view

    async def drain(self) -> None:
        """Wait for every in-flight compile, stale ones included, to finish."""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    def close(self) -> None:
        """Cancel the debounce timer and in-flight compiles, release all artifacts. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        self.lifecycle.release_all()
        self._set_state(Idle())
        self._log_event("session_closed", highest_issued=self.highest_issued)
        _log_info(f"Session closed after {self.highest_issued} compile requests")

    async def aclose(self) -> None:
        """close(), then wait for cancelled compiles to finish cleaning up."""
        tasks = list(self._tasks)
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "CompileOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # State machine

    def _dispatch(self, event: SessionEvent) -> None:
        if self._closed:
            _log_debug(f"Ignoring {type(event).__name__}: session closed")
            return

        before_state = self._state
        before_view = self.view

        if isinstance(event, EditReceived):
            self._on_edit(event)
        elif isinstance(event, DebounceElapsed):
            self._on_debounce_elapsed(event)
        elif isinstance(event, CompileFinished):
            self._on_compile_finished(event)
        else:
            raise TypeError(f"Unknown session event: {event!r}")

        log_transition(before_state, self._state, event)

        view = self.view
        if view != before_view:
            self._notify(view)

    def _on_edit(self, event: EditReceived) -> None:
        self._source = event.source
        self._cancel_timer()
        self._generation += 1

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.debounce_s, self._dispatch, DebounceElapsed(self._generation)
        )
        self.lifecycle.track(self._timer)
        self._set_state(Debouncing(self._generation))

    def _on_debounce_elapsed(self, event: DebounceElapsed) -> None:
        if event.generation != self._generation:
            # A newer edit restarted the window after this timer was scheduled
            return
        self._timer = None

        self.highest_issued += 1
        request = CompileRequest(source_snapshot=self._source, sequence_number=self.highest_issued)

        self._set_state(Compiling(request))
        self._log_event(
            "compile_issued",
            sequence_number=request.sequence_number,
            source_chars=len(request.source_snapshot),
        )
        _log_debug(f"Issued request {request.sequence_number}")

        task = asyncio.get_running_loop().create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.lifecycle.track(task)

    def _on_compile_finished(self, event: CompileFinished) -> None:
        sequence_number = event.sequence_number

        if sequence_number < self.highest_issued:
            self.stale_discarded += 1
            self._log_event("stale_discarded", sequence_number=sequence_number)
            _log_debug(
                f"Discarded stale result {sequence_number} (latest is {self.highest_issued})"
            )
            return

        current = (
            isinstance(self._state, Compiling)
            and self._state.request.sequence_number == sequence_number
        )
        if not current and not self.show_superseded_results:
            _log_debug(f"Held back result {sequence_number}: a newer edit is debouncing")
            return

        self._apply(event.outcome, sequence_number, superseded=not current)
        if current:
            self._set_state(Idle())

    def _apply(self, outcome: CompileOutcome, sequence_number: int, superseded: bool) -> None:
        if outcome.ok:
            handle = self.lifecycle.publish(outcome.artifact, sequence_number)
            try:
                self.lifecycle.promote(handle)
            except ArtifactDecodeError as e:
                result = Failure(
                    reason=FailureReason.OUTPUT_MISSING,
                    diagnostic_text=str(e),
                    sequence_number=sequence_number,
                )
            else:
                result = Success(artifact_bytes=outcome.artifact, sequence_number=sequence_number)
        else:
            result = Failure(
                reason=outcome.reason,
                diagnostic_text=outcome.diagnostic_text,
                sequence_number=sequence_number,
            )

        self._result = result
        log_result_applied(result, superseded)
        self._log_event(
            "compile_completed",
            sequence_number=sequence_number,
            outcome=result.name,
            reason=result.reason.value if isinstance(result, Failure) else None,
            superseded=superseded,
        )

    async def _run(self, request: CompileRequest) -> None:
        await self._persist(request)
        try:
            outcome = await self.compiler.compile(request.source_snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_compiler_crash(e, request.sequence_number)
            outcome = CompileFailure(
                reason=FailureReason.COMPILATION_ERROR,
                diagnostic_text=f"{type(e).__name__}: {e}",
                errors=[str(e)],
            )
        self._dispatch(CompileFinished(request.sequence_number, outcome))

    # Helpers

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        if isinstance(state, Idle):
            self._idle.set()
        else:
            self._idle.clear()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _persist(self, request: CompileRequest) -> None:
        """
        Best-effort save in a worker thread; failures become a warning and never block the compile.

        Saves run one at a time so the first save's document id is reused by the next.
        """
        if self.store is None:
            return
        async with self._save_lock:
            try:
                doc = await asyncio.to_thread(
                    self.store.save_document,
                    request.source_snapshot,
                    title=self.title,
                    doc_id=self.document_id,
                )
            except (PersistenceFailure, DocumentNotFoundError) as e:
                warning = f"Could not save document: {e}"
                _log_warning(warning)
                self._log_event("persistence_failed", sequence_number=request.sequence_number)
            else:
                self.document_id = doc.id
                warning = None

        if warning != self._persistence_warning and not self._closed:
            self._persistence_warning = warning
            self._notify(self.view)

    def _notify(self, view: ViewState) -> None:
        for observer in list(self._observers):
            try:
                observer(view)
            except Exception as e:
                log_compiler_crash(e, None, where=f"observer {observer!r}")

    def _log_event(self, event_type: str, **fields) -> None:
        if self.event_log is None:
            return
        log_session_event(
            self.event_log, event_type, document_id=self.document_id, source="session", **fields
        )
