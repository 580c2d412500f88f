from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import shutter
from errors import NO_SHUTTER_TARGET
from shutter import KeyPressShutter


class _Key:
    space = "<space>"
    enter = "<enter>"


def test_missing_keyboard_dependency(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutter, "Controller", None)
    monkeypatch.setattr(shutter, "Key", None)

    result = KeyPressShutter().fire()

    assert result.success is False
    assert result.reason == "keyboard dependency missing"


def test_blank_key_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutter, "Controller", MagicMock())
    monkeypatch.setattr(shutter, "Key", _Key)

    result = KeyPressShutter(key_name="  ").fire()

    assert result.success is False
    assert result.reason == "no shutter key configured"


def test_fire_presses_and_releases_named_key(monkeypatch: pytest.MonkeyPatch) -> None:
    controller = MagicMock()
    monkeypatch.setattr(shutter, "Controller", MagicMock(return_value=controller))
    monkeypatch.setattr(shutter, "Key", _Key)

    result = KeyPressShutter(key_name="Key.space", hold_s=0).fire()

    assert result.success is True
    controller.press.assert_called_once_with("<space>")
    controller.release.assert_called_once_with("<space>")


def test_plain_character_key(monkeypatch: pytest.MonkeyPatch) -> None:
    controller = MagicMock()
    monkeypatch.setattr(shutter, "Controller", MagicMock(return_value=controller))
    monkeypatch.setattr(shutter, "Key", _Key)

    button = KeyPressShutter(hold_s=0)
    button.set_key("v")
    button.fire()

    assert button.key_name == "v"
    controller.press.assert_called_once_with("v")


def test_press_failure_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    controller = MagicMock()
    controller.press.side_effect = OSError("no display")
    monkeypatch.setattr(shutter, "Controller", MagicMock(return_value=controller))
    monkeypatch.setattr(shutter, "Key", _Key)

    result = KeyPressShutter(hold_s=0).fire()

    assert result.success is False
    assert result.reason.startswith(NO_SHUTTER_TARGET)
    assert "no display" in result.reason
