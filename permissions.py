"""Permission gate for starting a listening session.

The gate itself is pure policy. ``DesktopPermissionProvider`` maps the two
permissions onto what a desktop actually has: a reachable input device for
the microphone, and a configured recognizer API key for speech.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import (
    MICROPHONE_PERMISSION_DENIED,
    PERMISSION_DENIED,
    SPEECH_PERMISSION_DENIED,
    PermissionDeniedError,
)
from interfaces import PermissionListener
from models import PermissionSnapshot, PermissionStatus

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


def can_start(snapshot: PermissionSnapshot) -> bool:
    return snapshot.microphone.is_granted and snapshot.speech.is_granted


def is_requestable(status: PermissionStatus) -> bool:
    return status.is_requestable


def status_message(snapshot: PermissionSnapshot) -> str:
    if can_start(snapshot):
        return ""
    if snapshot.microphone.is_granted:
        return "Enable speech recognition permission to start listening."
    if snapshot.speech.is_granted:
        return "Enable microphone permission to start listening."
    return "Enable speech recognition and microphone permissions to start listening."


class PermissionGate:
    def __init__(self, snapshot: Optional[PermissionSnapshot] = None) -> None:
        self.snapshot = snapshot or PermissionSnapshot()
        self.pending_start = False

    @property
    def is_open(self) -> bool:
        return can_start(self.snapshot)

    def update(self, snapshot: PermissionSnapshot) -> bool:
        changed = snapshot != self.snapshot
        self.snapshot = snapshot
        return changed

    def mark_pending(self) -> None:
        self.pending_start = True

    def clear_pending(self) -> None:
        self.pending_start = False

    def should_resume(self) -> bool:
        return self.pending_start and self.is_open

    def denial_error(self) -> PermissionDeniedError:
        mic = self.snapshot.microphone.is_granted
        speech = self.snapshot.speech.is_granted
        if mic and not speech:
            code = SPEECH_PERMISSION_DENIED
        elif speech and not mic:
            code = MICROPHONE_PERMISSION_DENIED
        else:
            code = PERMISSION_DENIED
        return PermissionDeniedError(code=code)


class DesktopPermissionProvider:
    def __init__(
        self,
        api_key: str = "",
        prompt_api_key: Optional[Callable[[], str]] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._api_key = api_key
        self._prompt_api_key = prompt_api_key
        self._speech_denied = False
        self._listeners: list[PermissionListener] = []

    def snapshot(self) -> PermissionSnapshot:
        return PermissionSnapshot(
            microphone=self._microphone_status(),
            speech=self._speech_status(),
        )

    def request_microphone(self) -> PermissionStatus:
        # Desktop audio has no prompt; re-reading the device list is the request.
        return self._microphone_status()

    def request_speech(self) -> PermissionStatus:
        status = self._speech_status()
        if not status.is_requestable or self._prompt_api_key is None:
            return status
        key = self._prompt_api_key().strip()
        with self._lock:
            if key:
                self._api_key = key
            else:
                self._speech_denied = True
        self._notify()
        return self._speech_status()

    def set_api_key(self, key: str) -> None:
        with self._lock:
            self._api_key = key.strip()
            self._speech_denied = False
        self._notify()

    def add_listener(self, listener: PermissionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: PermissionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self) -> None:
        snapshot = self.snapshot()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)

    def _microphone_status(self) -> PermissionStatus:
        if sd is None:
            return PermissionStatus.RESTRICTED
        try:
            sd.query_devices(kind="input")
        except (ValueError, sd.PortAudioError) as exc:
            logger.debug("no input device available: %s", exc)
            return PermissionStatus.DENIED
        return PermissionStatus.GRANTED

    def _speech_status(self) -> PermissionStatus:
        with self._lock:
            if self._api_key:
                return PermissionStatus.GRANTED
            if self._speech_denied:
                return PermissionStatus.DENIED
        return PermissionStatus.NOT_DETERMINED
