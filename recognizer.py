"""Transcription engine backed by DashScope realtime speech recognition.

Each listening attempt opens one ``dashscope.audio.asr.Recognition`` stream.
Audio frames are pushed with ``send_audio_frame``; the SDK calls back on its
own websocket thread with sentence results. A sentence still in progress is
reported as a partial transcript, a finished sentence as the final one.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any

from errors import (
    ASR_PROTOCOL_ERROR,
    AUTH_FAILED,
    NETWORK_ERROR,
    NO_SPEECH,
    RecognizerUnavailableError,
    VoiceTriggerError,
)
from interfaces import AvailabilityListener, EngineErrorCallback, UpdateCallback
from models import AudioFrame

try:
    import dashscope
    from dashscope.audio.asr import Recognition, RecognitionCallback, RecognitionResult
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    Recognition = None  # type: ignore
    RecognitionResult = None  # type: ignore
    RecognitionCallback = object  # type: ignore

logger = logging.getLogger(__name__)


def to_engine_error(message: str, status_code: Any = None) -> VoiceTriggerError:
    """Map an SDK/network failure description to a coded error."""
    low = f"{status_code or ''} {message}".lower()
    if "401" in low or "403" in low or "auth" in low or "api key" in low or "apikey" in low:
        return VoiceTriggerError(message, code=AUTH_FAILED)
    if "no valid audio" in low or "no speech" in low or "silence" in low:
        return VoiceTriggerError(message, code=NO_SPEECH)
    if "timeout" in low or "network" in low or "connection" in low:
        return VoiceTriggerError(message, code=NETWORK_ERROR)
    if not message:
        return VoiceTriggerError("recognition failed", code=ASR_PROTOCOL_ERROR)
    return VoiceTriggerError(message)


class DashscopeRecognitionHandle(RecognitionCallback):
    def __init__(
        self,
        engine: "DashscopeTranscriptionEngine",
        on_update: UpdateCallback,
        on_error: EngineErrorCallback,
    ) -> None:
        super().__init__()
        self._engine = engine
        self._on_update = on_update
        self._on_error = on_error
        self._lock = threading.Lock()
        self._cancelled = False
        self._ended = False
        self._errored = False
        self._recognition: Any = Recognition(
            model=engine.model,
            format="pcm",
            sample_rate=engine.sample_rate,
            callback=self,
        )

    def start(self) -> None:
        self._recognition.start()

    def append(self, frame: AudioFrame) -> None:
        with self._lock:
            if self._cancelled or self._ended:
                return
        try:
            self._recognition.send_audio_frame(frame.pcm16_bytes)
        except Exception as exc:
            self._report(to_engine_error(str(exc)))

    def end_audio(self) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        try:
            self._recognition.stop()
        except Exception as exc:
            logger.debug("recognition stop failed: %s", exc)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True

    # ------------------------------------------------------------------
    # RecognitionCallback
    # ------------------------------------------------------------------

    def on_open(self) -> None:
        logger.debug("recognition stream opened")

    def on_close(self) -> None:
        logger.debug("recognition stream closed")

    def on_complete(self) -> None:
        logger.debug("recognition stream complete")

    def on_error(self, result: Any) -> None:
        message = str(getattr(result, "message", "") or "")
        error = to_engine_error(message, getattr(result, "status_code", None))
        if error.code == AUTH_FAILED:
            self._engine.mark_unavailable()
        self._report(error)

    def on_event(self, result: Any) -> None:
        with self._lock:
            if self._cancelled:
                return
        sentence = result.get_sentence()
        if not isinstance(sentence, dict) or "text" not in sentence:
            return
        text = str(sentence.get("text") or "")
        is_final = bool(RecognitionResult.is_sentence_end(sentence))
        if text or is_final:
            self._on_update(text, is_final)

    def _report(self, error: VoiceTriggerError) -> None:
        with self._lock:
            if self._cancelled or self._errored:
                return
            self._errored = True
        self._on_error(error)


class DashscopeTranscriptionEngine:
    def __init__(
        self,
        api_key: str = "",
        model: str = "paraformer-realtime-v2",
        sample_rate: int = 16000,
    ) -> None:
        self.model = model
        self.sample_rate = sample_rate
        self._api_key = api_key
        self._auth_failed = False
        self._lock = threading.Lock()
        self._listeners: list[AvailabilityListener] = []

    def is_available(self) -> bool:
        if dashscope is None:
            return False
        with self._lock:
            return bool(self._resolved_api_key()) and not self._auth_failed

    def begin_session(self, on_update: UpdateCallback, on_error: EngineErrorCallback) -> DashscopeRecognitionHandle:
        if not self.is_available():
            raise RecognizerUnavailableError()
        with self._lock:
            dashscope.api_key = self._resolved_api_key()
        handle = DashscopeRecognitionHandle(self, on_update, on_error)
        try:
            handle.start()
        except Exception as exc:
            raise to_engine_error(str(exc)) from exc
        return handle

    def update_api_key(self, api_key: str) -> None:
        was_available = self.is_available()
        with self._lock:
            self._api_key = api_key
            self._auth_failed = False
        self._notify_if_changed(was_available)

    def mark_unavailable(self) -> None:
        was_available = self.is_available()
        with self._lock:
            self._auth_failed = True
        self._notify_if_changed(was_available)

    def add_availability_listener(self, listener: AvailabilityListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_availability_listener(self, listener: AvailabilityListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _resolved_api_key(self) -> str:
        return self._api_key or os.getenv("DASHSCOPE_API_KEY", "")

    def _notify_if_changed(self, was_available: bool) -> None:
        available = self.is_available()
        if available == was_available:
            return
        logger.info("recognizer availability changed: %s", available)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(available)
