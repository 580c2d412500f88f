"""Shutter service that presses the camera app's capture key."""

from __future__ import annotations

import logging
import time
from typing import Any

from errors import NO_SHUTTER_TARGET
from models import ShutterResult

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


def parse_key(name: str) -> Any:
    """Resolve ``Key.space`` style names to pynput keys; plain text stays a char."""
    name = name.strip()
    if name.startswith("Key.") and Key is not None:
        return getattr(Key, name[len("Key."):])
    return name


class KeyPressShutter:
    def __init__(self, key_name: str = "Key.space", hold_s: float = 0.05) -> None:
        self._key_name = key_name
        self._hold_s = hold_s

    @property
    def key_name(self) -> str:
        return self._key_name

    def set_key(self, key_name: str) -> None:
        self._key_name = key_name

    def fire(self) -> ShutterResult:
        if Controller is None or Key is None:
            return ShutterResult(success=False, reason="keyboard dependency missing")
        if not self._key_name.strip():
            return ShutterResult(success=False, reason="no shutter key configured")

        try:
            key = parse_key(self._key_name)
            keyboard = Controller()
            keyboard.press(key)
            time.sleep(self._hold_s)
            keyboard.release(key)
        except Exception as exc:
            logger.warning("shutter key press failed: %s", exc)
            return ShutterResult(success=False, reason=f"{NO_SHUTTER_TARGET}: {exc}")
        logger.info("shutter fired with %s", self._key_name)
        return ShutterResult(success=True, reason="ok")
