"""Protocol interfaces used by SessionSupervisor and the app shell."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from errors import VoiceTriggerError
from models import (
    AudioFrame,
    AudioRouteSnapshot,
    PermissionSnapshot,
    PermissionStatus,
    RouteChangeReason,
    ShutterResult,
)

BufferSink = Callable[[AudioFrame], None]
UpdateCallback = Callable[[str, bool], None]
EngineErrorCallback = Callable[[VoiceTriggerError], None]
AvailabilityListener = Callable[[bool], None]
PermissionListener = Callable[[PermissionSnapshot], None]
RouteListener = Callable[[AudioRouteSnapshot, RouteChangeReason], None]


class AudioCaptureSource(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...

    def install_buffer_sink(self, sink: BufferSink) -> None: ...

    def remove_buffer_sink(self) -> None: ...


class TranscriptionHandle(Protocol):
    def append(self, frame: AudioFrame) -> None: ...

    def end_audio(self) -> None: ...

    def cancel(self) -> None: ...


class TranscriptionEngine(Protocol):
    def begin_session(
        self,
        on_update: UpdateCallback,
        on_error: EngineErrorCallback,
    ) -> TranscriptionHandle: ...

    def is_available(self) -> bool: ...

    def add_availability_listener(self, listener: AvailabilityListener) -> None: ...

    def remove_availability_listener(self, listener: AvailabilityListener) -> None: ...


class PermissionProvider(Protocol):
    def snapshot(self) -> PermissionSnapshot: ...

    def request_microphone(self) -> PermissionStatus: ...

    def request_speech(self) -> PermissionStatus: ...

    def add_listener(self, listener: PermissionListener) -> None: ...

    def remove_listener(self, listener: PermissionListener) -> None: ...


class AudioRouteProvider(Protocol):
    def snapshot(self) -> AudioRouteSnapshot: ...

    def select_preferred_input(self, source_id: Optional[str]) -> None: ...

    def add_listener(self, listener: RouteListener) -> None: ...

    def remove_listener(self, listener: RouteListener) -> None: ...


class ShutterService(Protocol):
    def fire(self) -> ShutterResult: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_trigger_phrase(self) -> str: ...

    def set_trigger_phrase(self, phrase: str) -> None: ...

    def get_preferred_input_id(self) -> Optional[str]: ...

    def set_preferred_input_id(self, source_id: Optional[str]) -> None: ...

    def get_shutter_key(self) -> str: ...

    def set_shutter_key(self, key: str) -> None: ...
