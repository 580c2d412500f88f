"""Core data models for the voice shutter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    LISTENING = "LISTENING"
    RESTARTING = "RESTARTING"
    STOPPED = "STOPPED"


class AttemptState(str, Enum):
    CONFIGURING = "CONFIGURING"
    RUNNING = "RUNNING"
    FINALIZED = "FINALIZED"
    ERRORED = "ERRORED"
    CLOSED = "CLOSED"


class RecognitionKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"


class ErrorClass(str, Enum):
    TRANSIENT = "transient"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class SessionEventKind(str, Enum):
    STARTED = "started"
    STOPPED = "stopped"
    FAILURE = "failure"


class PermissionStatus(str, Enum):
    UNKNOWN = "unknown"
    NOT_DETERMINED = "not-determined"
    GRANTED = "granted"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def is_granted(self) -> bool:
        return self is PermissionStatus.GRANTED

    @property
    def is_requestable(self) -> bool:
        return self is PermissionStatus.NOT_DETERMINED

    @property
    def requires_system_settings(self) -> bool:
        return self in (PermissionStatus.DENIED, PermissionStatus.RESTRICTED)


class AudioInputKind(str, Enum):
    BUILT_IN = "Built-in"
    BLUETOOTH = "Bluetooth"
    WIRED = "Wired Headphones"
    USB = "USB Audio"
    EXTERNAL = "External"


class RouteChangeReason(str, Enum):
    NEW_DEVICE_AVAILABLE = "new-device-available"
    OLD_DEVICE_UNAVAILABLE = "old-device-unavailable"
    ROUTE_CONFIGURATION_CHANGE = "route-configuration-change"
    CATEGORY_CHANGE = "category-change"
    OTHER = "other"

    @property
    def requires_restart(self) -> bool:
        return self in (
            RouteChangeReason.NEW_DEVICE_AVAILABLE,
            RouteChangeReason.OLD_DEVICE_UNAVAILABLE,
            RouteChangeReason.ROUTE_CONFIGURATION_CHANGE,
        )


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass(frozen=True)
class PermissionSnapshot:
    microphone: PermissionStatus = PermissionStatus.UNKNOWN
    speech: PermissionStatus = PermissionStatus.UNKNOWN

    @property
    def can_listen(self) -> bool:
        return self.microphone.is_granted and self.speech.is_granted


@dataclass(frozen=True)
class AudioInputSource:
    id: str
    name: str
    kind: AudioInputKind
    is_current: bool = False


@dataclass(frozen=True)
class AudioRouteSnapshot:
    inputs: tuple[AudioInputSource, ...] = ()

    @property
    def current(self) -> Optional[AudioInputSource]:
        for source in self.inputs:
            if source.is_current:
                return source
        return None

    def find(self, source_id: str) -> Optional[AudioInputSource]:
        for source in self.inputs:
            if source.id == source_id:
                return source
        return None


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    generation: int = 0


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    new_cursor: int


@dataclass(frozen=True)
class TriggerEvent:
    phrase: str
    transcript: str
    timestamp: float
    generation: int = 0


@dataclass(frozen=True)
class SessionEvent:
    kind: SessionEventKind
    code: str = ""
    message: str = ""


@dataclass
class ShutterResult:
    success: bool
    reason: str
