"""Toggle-listening hotkey on top of the pynput keyboard listener."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


def key_name(key: object) -> str:
    """Name a pynput key the way the config stores it.

    Special keys keep pynput's ``Key.f8`` form; printable keys are stored as
    the bare character rather than the quoted ``'a'`` repr.
    """
    char = getattr(key, "char", None)
    if char:
        return str(char).lower()
    return str(key)


class GlobalHotkeyAdapter:
    """Calls ``on_toggle`` once per press of the bound key.

    Holding the key down does not toggle again until it is released.
    """

    def __init__(self, hotkey_name: str = "Key.f8") -> None:
        self._hotkey_name = hotkey_name.strip()
        self._listener: Optional[object] = None
        self._held = False
        self._lock = threading.Lock()

    @property
    def hotkey_name(self) -> str:
        return self._hotkey_name

    def set_hotkey(self, hotkey_name: str) -> None:
        with self._lock:
            self._hotkey_name = hotkey_name.strip()
            self._held = False
        logger.info("toggle hotkey bound to %s", self._hotkey_name)

    def handle_press(self, key: object, on_toggle: Callable[[], None]) -> None:
        with self._lock:
            if key_name(key) != self._hotkey_name or self._held:
                return
            self._held = True
        on_toggle()

    def handle_release(self, key: object) -> None:
        with self._lock:
            if key_name(key) == self._hotkey_name:
                self._held = False

    def start(self, on_toggle: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self.stop()
        self._listener = keyboard.Listener(
            on_press=lambda key: self.handle_press(key, on_toggle),
            on_release=self.handle_release,
        )
        self._listener.start()

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
