"""Input device discovery and route-change notifications via sounddevice."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from interfaces import RouteListener
from models import AudioInputKind, AudioInputSource, AudioRouteSnapshot, RouteChangeReason

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

_KIND_HINTS = (
    (AudioInputKind.BLUETOOTH, ("bluetooth", "airpods", "hands-free", "handsfree", "hfp")),
    (AudioInputKind.USB, ("usb",)),
    (AudioInputKind.WIRED, ("headset", "headphone", "external mic")),
    (AudioInputKind.BUILT_IN, ("built-in", "builtin", "internal", "macbook", "microphone array")),
)


def input_kind(name: str) -> AudioInputKind:
    low = name.lower()
    for kind, hints in _KIND_HINTS:
        if any(hint in low for hint in hints):
            return kind
    return AudioInputKind.EXTERNAL


def source_id(device: dict) -> str:
    # PortAudio indices shift on hotplug; host API plus name is stable.
    return f"{device.get('hostapi', 0)}:{device.get('name', '')}"


class SoundDeviceRouteProvider:
    """Polls the PortAudio device list and reports what changed.

    Added inputs report ``new-device-available``, removed inputs
    ``old-device-unavailable`` and a different current input
    ``route-configuration-change``.
    """

    def __init__(self, poll_interval_s: float = 1.0, preferred_input_id: Optional[str] = None) -> None:
        self._poll_interval_s = poll_interval_s
        self._preferred_input_id = preferred_input_id
        self._lock = threading.Lock()
        self._listeners: list[RouteListener] = []
        self._last: Optional[AudioRouteSnapshot] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def preferred_input_id(self) -> Optional[str]:
        return self._preferred_input_id

    def snapshot(self) -> AudioRouteSnapshot:
        devices = self._query_inputs()
        current_id = self._current_id(devices)
        return AudioRouteSnapshot(
            inputs=tuple(
                AudioInputSource(
                    id=source_id(dev),
                    name=str(dev.get("name", "")),
                    kind=input_kind(str(dev.get("name", ""))),
                    is_current=source_id(dev) == current_id,
                )
                for dev in devices
            )
        )

    def preferred_device_index(self) -> Optional[int]:
        preferred = self._preferred_input_id
        if preferred is None:
            return None
        for dev in self._query_inputs():
            if source_id(dev) == preferred:
                return int(dev["index"])
        return None

    def select_preferred_input(self, source_id_: Optional[str]) -> None:
        with self._lock:
            if source_id_ == self._preferred_input_id:
                return
            self._preferred_input_id = source_id_
        logger.info("preferred input set to %r", source_id_)
        snapshot = self.snapshot()
        with self._lock:
            self._last = snapshot
        self._notify(snapshot, RouteChangeReason.ROUTE_CONFIGURATION_CHANGE)

    def add_listener(self, listener: RouteListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: RouteListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        with self._lock:
            self._last = self.snapshot()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker, name="audio-route-poll", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=self._poll_interval_s + 0.5)
        self._thread = None

    def poll_once(self) -> Optional[RouteChangeReason]:
        snapshot = self.snapshot()
        with self._lock:
            previous = self._last
            self._last = snapshot
        if previous is None:
            return None
        reason = self._diff(previous, snapshot)
        if reason is not None:
            logger.info("audio route change: %s", reason.value)
            self._notify(snapshot, reason)
        return reason

    def _worker(self) -> None:
        while not self._stop_event.wait(self._poll_interval_s):
            try:
                self.poll_once()
            except Exception:
                logger.exception("audio route poll failed")

    @staticmethod
    def _diff(previous: AudioRouteSnapshot, current: AudioRouteSnapshot) -> Optional[RouteChangeReason]:
        before = {source.id for source in previous.inputs}
        after = {source.id for source in current.inputs}
        if before - after:
            return RouteChangeReason.OLD_DEVICE_UNAVAILABLE
        if after - before:
            return RouteChangeReason.NEW_DEVICE_AVAILABLE
        old_current = previous.current.id if previous.current else None
        new_current = current.current.id if current.current else None
        if old_current != new_current:
            return RouteChangeReason.ROUTE_CONFIGURATION_CHANGE
        return None

    def _notify(self, snapshot: AudioRouteSnapshot, reason: RouteChangeReason) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot, reason)

    def _query_inputs(self) -> list[dict[str, Any]]:
        if sd is None:
            return []
        try:
            devices = sd.query_devices()
        except Exception as exc:
            logger.warning("could not list audio devices: %s", exc)
            return []
        return [dict(dev) for dev in devices if dev.get("max_input_channels", 0) > 0]

    def _current_id(self, devices: list[dict[str, Any]]) -> Optional[str]:
        ids = [source_id(dev) for dev in devices]
        if self._preferred_input_id in ids:
            return self._preferred_input_id
        try:
            default_index = sd.default.device[0]
        except Exception:
            default_index = None
        for dev in devices:
            if dev.get("index") == default_index:
                return source_id(dev)
        return ids[0] if ids else None
