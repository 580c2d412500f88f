from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

import hotkey
from hotkey import GlobalHotkeyAdapter, key_name


class _SpecialKey:
    def __init__(self, name: str) -> None:
        self._name = name

    def __str__(self) -> str:
        return self._name


F8 = _SpecialKey("Key.f8")
F9 = _SpecialKey("Key.f9")


def test_key_name_forms() -> None:
    assert key_name(F8) == "Key.f8"
    assert key_name(SimpleNamespace(char="V")) == "v"


def test_toggle_fires_once_per_press() -> None:
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f8")
    toggles: list[int] = []

    adapter.handle_press(F8, lambda: toggles.append(1))
    adapter.handle_press(F8, lambda: toggles.append(1))
    adapter.handle_release(F8)
    adapter.handle_press(F8, lambda: toggles.append(1))

    assert len(toggles) == 2


def test_other_keys_are_ignored() -> None:
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f8")
    toggles: list[int] = []

    adapter.handle_press(F9, lambda: toggles.append(1))
    adapter.handle_press(SimpleNamespace(char="f"), lambda: toggles.append(1))

    assert toggles == []


def test_rebinding_takes_effect() -> None:
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f8")
    toggles: list[int] = []

    adapter.set_hotkey(" v ")
    adapter.handle_press(F8, lambda: toggles.append(1))
    adapter.handle_press(SimpleNamespace(char="v"), lambda: toggles.append(1))

    assert adapter.hotkey_name == "v"
    assert len(toggles) == 1


def test_start_requires_pynput(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(hotkey, "keyboard", None)

    with pytest.raises(RuntimeError):
        GlobalHotkeyAdapter().start(lambda: None)


def test_start_and_stop_manage_listener(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_keyboard = MagicMock()
    monkeypatch.setattr(hotkey, "keyboard", fake_keyboard)
    toggles: list[int] = []

    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f8")
    adapter.start(lambda: toggles.append(1))
    on_press = fake_keyboard.Listener.call_args.kwargs["on_press"]
    on_press(F8)
    adapter.stop()

    assert toggles == [1]
    fake_keyboard.Listener.return_value.start.assert_called_once()
    fake_keyboard.Listener.return_value.stop.assert_called_once()
