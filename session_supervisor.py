"""State-machine based supervision of listening attempts."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from control_path import ControlPath
from errors import (
    RECOGNIZER_UNAVAILABLE,
    ROUTE_RESTART_FAILED,
    VoiceTriggerError,
    user_message,
)
from interfaces import AudioCaptureSource, AudioRouteProvider, PermissionProvider, TranscriptionEngine
from models import (
    AudioRouteSnapshot,
    ErrorClass,
    PermissionSnapshot,
    RecognitionEvent,
    RecognitionKind,
    RouteChangeReason,
    SessionEvent,
    SessionEventKind,
    SessionState,
    TriggerEvent,
)
from permissions import PermissionGate
from phrases import DEFAULT_TRIGGER_PHRASE, TriggerPhrase
from recognition_session import RecognitionSession
from throttle import DEFAULT_COOLDOWN_S

logger = logging.getLogger(__name__)

ROUTE_SETTLE_DELAY_S = 0.7

ACTIVE_STATES = (SessionState.STARTING, SessionState.LISTENING, SessionState.RESTARTING)

StateCallback = Callable[[SessionState, SessionState], None]
TriggerCallback = Callable[[TriggerEvent], None]
SessionEventCallback = Callable[[SessionEvent], None]
TranscriptCallback = Callable[[str], None]
PermissionCallback = Callable[[PermissionSnapshot], None]
RouteCallback = Callable[[AudioRouteSnapshot], None]


class SessionSupervisor:
    """Keeps one recognition attempt alive until told to stop.

    Every mutation runs on a single control path. Public methods block until
    their work has run there; engine, permission and route notifications are
    posted onto it and handled in arrival order. Attempts carry a generation
    number so that callbacks from a superseded attempt are dropped.
    """

    def __init__(
        self,
        capture: AudioCaptureSource,
        engine: TranscriptionEngine,
        permissions: PermissionProvider,
        routes: Optional[AudioRouteProvider] = None,
        trigger_phrase: str = DEFAULT_TRIGGER_PHRASE,
        default_phrase: str = DEFAULT_TRIGGER_PHRASE,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
        settle_delay_s: float = ROUTE_SETTLE_DELAY_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_trigger: Optional[TriggerCallback] = None,
        on_session_event: Optional[SessionEventCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_permissions: Optional[PermissionCallback] = None,
        on_routes: Optional[RouteCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._capture = capture
        self._engine = engine
        self._permissions = permissions
        self._routes = routes
        self._default_phrase = default_phrase
        self._cooldown_s = cooldown_s
        self._settle_delay_s = settle_delay_s
        self._clock = clock
        self._sleep = sleep
        self._on_trigger = on_trigger
        self._on_session_event = on_session_event
        self._on_transcript = on_transcript
        self._on_permissions = on_permissions
        self._on_routes = on_routes
        self._on_state_change = on_state_change

        self._control = ControlPath()
        self._permission_worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="permission-worker")
        self._state = SessionState.IDLE
        self._generation = 0
        self._session: Optional[RecognitionSession] = None
        self._restart_failed = False
        self._phrase = TriggerPhrase.from_text(trigger_phrase, default_phrase)
        self._gate = PermissionGate(permissions.snapshot())

        self._engine.add_availability_listener(self._availability_changed)
        self._permissions.add_listener(self._permissions_changed)
        if self._routes is not None:
            self._routes.add_listener(self._route_changed)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def trigger_phrase(self) -> TriggerPhrase:
        return self._phrase

    @property
    def permission_snapshot(self) -> PermissionSnapshot:
        return self._gate.snapshot

    @property
    def pending_start(self) -> bool:
        return self._gate.pending_start

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._control.call(self._start)

    def stop(self) -> None:
        self._control.call(self._stop)

    def update_trigger_phrase(self, text: str) -> TriggerPhrase:
        return self._control.call(self._update_phrase, text)

    def select_preferred_input(self, source_id: Optional[str]) -> None:
        if self._routes is None:
            return
        self._routes.select_preferred_input(source_id)

    def refresh_permissions(self) -> None:
        self._control.call(self._refresh_permissions)

    def request_permissions_if_needed(self) -> Future:
        """Request whatever is still undetermined, off the control path."""
        return self._permission_worker.submit(self._request_permissions)

    def flush(self, timeout: Optional[float] = 5.0) -> None:
        self._control.flush(timeout)

    def close(self) -> None:
        if self._control.closed:
            return
        self._engine.remove_availability_listener(self._availability_changed)
        self._permissions.remove_listener(self._permissions_changed)
        if self._routes is not None:
            self._routes.remove_listener(self._route_changed)
        self._control.call(self._stop)
        self._permission_worker.shutdown(wait=False)
        self._control.shutdown()

    # ------------------------------------------------------------------
    # Listener entry points (any thread)
    # ------------------------------------------------------------------

    def _post_recognition_event(self, event: RecognitionEvent) -> None:
        self._control.post(self._handle_recognition_event, event)

    def _availability_changed(self, available: bool) -> None:
        self._control.post(self._handle_availability, available)

    def _permissions_changed(self, snapshot: PermissionSnapshot) -> None:
        self._control.post(self._apply_permissions, snapshot)

    def _route_changed(self, snapshot: AudioRouteSnapshot, reason: RouteChangeReason) -> None:
        self._control.post(self._handle_route_change, snapshot, reason)

    # ------------------------------------------------------------------
    # Control path
    # ------------------------------------------------------------------

    def _start(self) -> None:
        if self._state in ACTIVE_STATES:
            return
        if self._gate.update(self._permissions.snapshot()) and self._on_permissions:
            self._on_permissions(self._gate.snapshot)
        if not self._gate.is_open:
            self._gate.mark_pending()
            error = self._gate.denial_error()
            logger.info("start deferred until permissions are granted: %s", error.code)
            raise error

        self._gate.clear_pending()
        self._restart_failed = False
        self._transition(SessionState.STARTING)
        try:
            self._open_session()
        except VoiceTriggerError as exc:
            logger.warning("failed to start listening: %s", exc.message)
            self._transition(SessionState.IDLE)
            self._emit_failure(exc.code, exc.message)
            raise
        self._transition(SessionState.LISTENING)
        self._emit(SessionEventKind.STARTED)

    def _stop(self) -> None:
        self._gate.clear_pending()
        self._restart_failed = False
        if self._state == SessionState.IDLE:
            return
        was_active = self._state in ACTIVE_STATES
        self._teardown()
        self._transition(SessionState.IDLE)
        if was_active:
            self._emit(SessionEventKind.STOPPED)

    def _update_phrase(self, text: str) -> TriggerPhrase:
        self._phrase = TriggerPhrase.from_text(text, self._default_phrase)
        if self._session is not None:
            self._session.update_phrase(self._phrase)
        logger.info("trigger phrase set to %r", self._phrase.normalized)
        return self._phrase

    def _refresh_permissions(self) -> None:
        self._apply_permissions(self._permissions.snapshot())

    def _request_permissions(self) -> PermissionSnapshot:
        snapshot = self._permissions.snapshot()
        if snapshot.microphone.is_requestable:
            self._permissions.request_microphone()
        if snapshot.speech.is_requestable:
            self._permissions.request_speech()
        self._control.post(self._refresh_permissions)
        return self._permissions.snapshot()

    def _apply_permissions(self, snapshot: PermissionSnapshot) -> None:
        changed = self._gate.update(snapshot)
        if changed and self._on_permissions:
            self._on_permissions(snapshot)

        if not self._gate.is_open:
            if self._state in ACTIVE_STATES:
                logger.warning("permissions revoked while listening")
                error = self._gate.denial_error()
                self._gate.mark_pending()
                self._halt(error.code, error.message)
            elif self._state == SessionState.STOPPED:
                self._gate.mark_pending()
            return

        if self._gate.should_resume() and self._state in (SessionState.IDLE, SessionState.STOPPED):
            logger.info("permissions granted, resuming pending start")
            try:
                self._start()
            except VoiceTriggerError as exc:
                logger.debug("pending start failed: %s", exc.code)

    def _handle_recognition_event(self, event: RecognitionEvent) -> None:
        session = self._session
        if session is None or event.generation != session.generation:
            logger.debug("dropping %s from stale attempt %d", event.kind, event.generation)
            return
        if self._state != SessionState.LISTENING:
            return

        if event.kind == RecognitionKind.ERROR.value:
            error_class = session.fail(event.code, event.message)
            if error_class is ErrorClass.FATAL:
                self._halt(event.code, event.message)
                return
            if error_class is ErrorClass.RECOVERABLE:
                logger.warning("recognition error %s: %s", event.code, event.message)
                self._emit_failure(event.code, event.message)
            else:
                logger.debug("transient recognition error: %s", event.message or event.code)
            self._restart()
            return

        logger.debug("heard %r", event.text)
        try:
            if self._on_transcript:
                self._on_transcript(event.text)
            if session.evaluate(event.text, self._clock()):
                logger.info("trigger phrase %r heard", session.phrase.normalized)
                if self._on_trigger:
                    self._on_trigger(
                        TriggerEvent(
                            phrase=session.phrase.normalized,
                            transcript=event.text,
                            timestamp=time.time(),
                            generation=session.generation,
                        )
                    )
        finally:
            # A final result always rolls over to a new attempt.
            if event.kind == RecognitionKind.FINAL.value and self._session is session:
                session.finalize()
                self._restart()

    def _handle_route_change(self, snapshot: AudioRouteSnapshot, reason: RouteChangeReason) -> None:
        if self._on_routes:
            self._on_routes(snapshot)
        if not reason.requires_restart:
            return
        if self._state == SessionState.LISTENING:
            logger.info("audio route changed (%s), restarting capture", reason.value)
            self._restart(settle_delay_s=self._settle_delay_s, failure_code=ROUTE_RESTART_FAILED)
        elif self._state == SessionState.STOPPED and self._restart_failed and self._gate.is_open:
            logger.info("audio route changed (%s), retrying failed restart", reason.value)
            self._transition(SessionState.STARTING)
            if self._settle_delay_s > 0:
                self._sleep(self._settle_delay_s)
            self._reopen(ROUTE_RESTART_FAILED)

    def _handle_availability(self, available: bool) -> None:
        if not available:
            if self._state in ACTIVE_STATES:
                self._halt(RECOGNIZER_UNAVAILABLE, "")
            return
        if self._state != SessionState.STOPPED:
            return
        if not self._gate.is_open:
            return
        logger.info("recognizer available again, resuming")
        self._transition(SessionState.STARTING)
        self._reopen(failure_code="")

    def _restart(self, settle_delay_s: float = 0.0, failure_code: str = "") -> None:
        self._transition(SessionState.RESTARTING)
        self._teardown()
        if settle_delay_s > 0:
            self._sleep(settle_delay_s)
        self._reopen(failure_code)

    def _reopen(self, failure_code: str) -> None:
        try:
            self._open_session()
        except VoiceTriggerError as exc:
            logger.warning("failed to restart listening: %s", exc.message)
            self._transition(SessionState.STOPPED)
            self._restart_failed = True
            self._emit_failure(failure_code or exc.code, exc.message)
            return
        self._restart_failed = False
        self._transition(SessionState.LISTENING)
        self._emit(SessionEventKind.STARTED)

    def _halt(self, code: str, message: str) -> None:
        logger.warning("listening halted: %s", code)
        self._restart_failed = False
        self._teardown()
        self._transition(SessionState.STOPPED)
        self._emit_failure(code, message)

    def _open_session(self) -> None:
        self._generation += 1
        session = RecognitionSession(
            generation=self._generation,
            capture=self._capture,
            engine=self._engine,
            phrase=self._phrase,
            post=self._post_recognition_event,
            cooldown_s=self._cooldown_s,
        )
        session.open()
        self._session = session

    def _teardown(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            session.close()

    def _emit(self, kind: SessionEventKind) -> None:
        if self._on_session_event:
            self._on_session_event(SessionEvent(kind=kind))

    def _emit_failure(self, code: str, message: str) -> None:
        if self._on_session_event:
            self._on_session_event(
                SessionEvent(kind=SessionEventKind.FAILURE, code=code, message=user_message(code, message))
            )

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("session %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
