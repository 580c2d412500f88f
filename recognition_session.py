"""One listening attempt: capture wired to the engine, transcript to matcher."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import matcher
from errors import AudioCaptureError, RecognizerUnavailableError, VoiceTriggerError, classify_error
from interfaces import AudioCaptureSource, TranscriptionEngine, TranscriptionHandle
from models import AttemptState, AudioFrame, ErrorClass, RecognitionEvent, RecognitionKind
from phrases import TriggerPhrase
from throttle import DEFAULT_COOLDOWN_S, TriggerThrottle

logger = logging.getLogger(__name__)

EventPoster = Callable[[RecognitionEvent], None]


def fold_case(text: str) -> str:
    """Lower-case ``text`` one character at a time, keeping its length.

    Characters whose lower case form is longer (such as "\u0130") are kept
    as they are, so the cursor always indexes the raw transcript.
    """
    folded = []
    for ch in text:
        low = ch.lower()
        folded.append(low if len(low) == 1 else ch)
    return "".join(folded)


class RecognitionSession:
    """Drives exactly one attempt of continuous listening.

    Engine callbacks may arrive on any thread. They are turned into
    ``RecognitionEvent`` messages tagged with this attempt's generation and
    handed to ``post``; only the owner (on its control path) calls
    ``evaluate``/``finalize``/``fail``/``close``.
    """

    def __init__(
        self,
        generation: int,
        capture: AudioCaptureSource,
        engine: TranscriptionEngine,
        phrase: TriggerPhrase,
        post: EventPoster,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
    ) -> None:
        self.generation = generation
        self.state = AttemptState.CONFIGURING
        self.phrase = phrase
        self.cursor = 0
        self._capture = capture
        self._engine = engine
        self._post = post
        self._throttle = TriggerThrottle(cooldown_s)
        self._handle: Optional[TranscriptionHandle] = None
        self._feed_lock = threading.Lock()
        self._feeding = False
        self._sink_installed = False

    def open(self) -> None:
        if not self._engine.is_available():
            raise RecognizerUnavailableError()
        try:
            self._handle = self._engine.begin_session(self._on_update, self._on_error)
        except VoiceTriggerError:
            self.close()
            raise
        except Exception as exc:
            self.close()
            raise RecognizerUnavailableError(f"recognizer failed to start: {exc}") from exc
        with self._feed_lock:
            self._feeding = True
        self._capture.install_buffer_sink(self._on_buffer)
        self._sink_installed = True
        try:
            self._capture.start()
        except VoiceTriggerError:
            self.close()
            raise
        except Exception as exc:
            self.close()
            raise AudioCaptureError(f"audio capture failed: {exc}") from exc
        self.state = AttemptState.RUNNING
        logger.debug("attempt %d running", self.generation)

    def evaluate(self, transcript: str, now: float) -> bool:
        result = matcher.evaluate(
            fold_case(transcript),
            self.cursor,
            self.phrase.normalized,
            self.phrase.variations,
        )
        self.cursor = result.new_cursor
        if not result.matched:
            return False
        if not self._throttle.should_fire(now):
            logger.debug("match inside cooldown swallowed (attempt %d)", self.generation)
            return False
        return True

    def finalize(self) -> None:
        self.state = AttemptState.FINALIZED

    def fail(self, code: str, message: str) -> ErrorClass:
        self.state = AttemptState.ERRORED
        return classify_error(code, message)

    def update_phrase(self, phrase: TriggerPhrase) -> None:
        self.phrase = phrase
        self.cursor = 0
        self._throttle.reset()

    def close(self) -> None:
        if self.state is AttemptState.CLOSED:
            return
        handle = self._handle
        self._handle = None
        if handle is not None:
            self._safe(handle.cancel, "cancel recognition")
        with self._feed_lock:
            self._feeding = False
        if handle is not None:
            self._safe(handle.end_audio, "end audio feed")
        self._safe(self._capture.stop, "stop capture")
        if self._sink_installed:
            self._sink_installed = False
            self._safe(self._capture.remove_buffer_sink, "remove buffer sink")
        self.state = AttemptState.CLOSED

    def _on_buffer(self, frame: AudioFrame) -> None:
        with self._feed_lock:
            handle = self._handle if self._feeding else None
        if handle is not None:
            handle.append(frame)

    def _on_update(self, transcript: str, is_final: bool) -> None:
        kind = RecognitionKind.FINAL if is_final else RecognitionKind.PARTIAL
        self._post(RecognitionEvent(kind=kind.value, text=transcript, generation=self.generation))

    def _on_error(self, error: VoiceTriggerError) -> None:
        self._post(
            RecognitionEvent(
                kind=RecognitionKind.ERROR.value,
                code=error.code,
                message=error.message,
                generation=self.generation,
            )
        )

    def _safe(self, fn: Callable[[], None], what: str) -> None:
        try:
            fn()
        except Exception:
            logger.warning("failed to %s (attempt %d)", what, self.generation, exc_info=True)
