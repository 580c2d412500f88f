"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from phrases import DEFAULT_TRIGGER_PHRASE

logger = logging.getLogger(__name__)

DEFAULT_HOTKEY = "Key.f8"
DEFAULT_SHUTTER_KEY = "Key.space"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_shutter" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        return str(self._read_all().get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_trigger_phrase(self) -> str:
        phrase = str(self._read_all().get("trigger_phrase", "")).strip()
        return phrase or DEFAULT_TRIGGER_PHRASE

    def set_trigger_phrase(self, phrase: str) -> None:
        self._set("trigger_phrase", phrase)

    def get_preferred_input_id(self) -> Optional[str]:
        value = self._read_all().get("preferred_input_id")
        return str(value) if value else None

    def set_preferred_input_id(self, source_id: Optional[str]) -> None:
        self._set("preferred_input_id", source_id)

    def get_shutter_key(self) -> str:
        return str(self._read_all().get("shutter_key", DEFAULT_SHUTTER_KEY))

    def set_shutter_key(self, key: str) -> None:
        self._set("shutter_key", key)

    def _set(self, name: str, value: object) -> None:
        data = self._read_all()
        data[name] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
