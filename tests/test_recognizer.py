"""Tests for the DashScope transcription engine with the SDK patched out."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

import recognizer
from errors import (
    ASR_PROTOCOL_ERROR,
    AUTH_FAILED,
    NETWORK_ERROR,
    NO_SPEECH,
    RecognizerUnavailableError,
    VoiceTriggerError,
)
from models import AudioFrame
from recognizer import DashscopeTranscriptionEngine, to_engine_error


class _FakeResult:
    def __init__(self, text: str, end: bool) -> None:
        self._sentence = {"text": text, "end_time": 10 if end else None}

    def get_sentence(self) -> dict[str, Any]:
        return self._sentence


class _FakeRecognitionResult:
    @staticmethod
    def is_sentence_end(sentence: dict[str, Any]) -> bool:
        return sentence.get("end_time") is not None


class _Collector:
    def __init__(self) -> None:
        self.updates: list[tuple[str, bool]] = []
        self.errors: list[VoiceTriggerError] = []

    def on_update(self, text: str, is_final: bool) -> None:
        self.updates.append((text, is_final))

    def on_error(self, error: VoiceTriggerError) -> None:
        self.errors.append(error)


@pytest.fixture()
def sdk(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)
    recognition_cls = MagicMock()
    monkeypatch.setattr(recognizer, "dashscope", SimpleNamespace(api_key=None))
    monkeypatch.setattr(recognizer, "Recognition", recognition_cls)
    monkeypatch.setattr(recognizer, "RecognitionResult", _FakeRecognitionResult)
    return recognition_cls


def _open(engine: DashscopeTranscriptionEngine) -> tuple[Any, _Collector]:
    collector = _Collector()
    handle = engine.begin_session(collector.on_update, collector.on_error)
    return handle, collector


@pytest.mark.parametrize(
    ("message", "status", "code"),
    [
        ("Invalid API key provided", None, AUTH_FAILED),
        ("forbidden", 403, AUTH_FAILED),
        ("No valid audio error", None, NO_SPEECH),
        ("connection reset by peer", None, NETWORK_ERROR),
        ("", None, ASR_PROTOCOL_ERROR),
        ("model overloaded", 500, ""),
    ],
)
def test_to_engine_error_codes(message: str, status: Any, code: str) -> None:
    assert to_engine_error(message, status).code == code


def test_unavailable_without_api_key(sdk: MagicMock) -> None:
    engine = DashscopeTranscriptionEngine(api_key="")

    assert engine.is_available() is False
    with pytest.raises(RecognizerUnavailableError):
        engine.begin_session(lambda text, final: None, lambda error: None)


def test_env_api_key_is_used(sdk: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSCOPE_API_KEY", "env-key")
    engine = DashscopeTranscriptionEngine()

    assert engine.is_available() is True
    _open(engine)
    assert recognizer.dashscope.api_key == "env-key"


def test_unavailable_without_sdk(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(recognizer, "dashscope", None)

    assert DashscopeTranscriptionEngine(api_key="k").is_available() is False


def test_begin_session_starts_pcm_stream(sdk: MagicMock) -> None:
    engine = DashscopeTranscriptionEngine(api_key="k", sample_rate=16000)
    _open(engine)

    kwargs = sdk.call_args.kwargs
    assert kwargs["model"] == "paraformer-realtime-v2"
    assert kwargs["format"] == "pcm"
    assert kwargs["sample_rate"] == 16000
    sdk.return_value.start.assert_called_once()


def test_begin_session_start_failure_is_coded(sdk: MagicMock) -> None:
    sdk.return_value.start.side_effect = RuntimeError("connection refused")
    engine = DashscopeTranscriptionEngine(api_key="k")

    with pytest.raises(VoiceTriggerError) as info:
        _open(engine)

    assert info.value.code == NETWORK_ERROR


def test_events_map_to_partial_and_final(sdk: MagicMock) -> None:
    handle, collector = _open(DashscopeTranscriptionEngine(api_key="k"))

    handle.on_event(_FakeResult("camera", end=False))
    handle.on_event(_FakeResult("camera me", end=True))

    assert collector.updates == [("camera", False), ("camera me", True)]


def test_cancel_suppresses_callbacks(sdk: MagicMock) -> None:
    handle, collector = _open(DashscopeTranscriptionEngine(api_key="k"))

    handle.cancel()
    handle.on_event(_FakeResult("camera me", end=True))
    handle.on_error(SimpleNamespace(message="connection lost", status_code=None))

    assert collector.updates == []
    assert collector.errors == []


def test_error_is_reported_once(sdk: MagicMock) -> None:
    handle, collector = _open(DashscopeTranscriptionEngine(api_key="k"))

    handle.on_error(SimpleNamespace(message="network timeout", status_code=None))
    handle.on_error(SimpleNamespace(message="network timeout", status_code=None))

    assert [error.code for error in collector.errors] == [NETWORK_ERROR]


def test_auth_error_marks_engine_unavailable(sdk: MagicMock) -> None:
    engine = DashscopeTranscriptionEngine(api_key="bad")
    availability: list[bool] = []
    engine.add_availability_listener(availability.append)
    handle, collector = _open(engine)

    handle.on_error(SimpleNamespace(message="Unauthorized", status_code=401))

    assert collector.errors[0].code == AUTH_FAILED
    assert engine.is_available() is False
    assert availability == [False]

    engine.update_api_key("good")
    assert engine.is_available() is True
    assert availability == [False, True]


def test_update_api_key_without_change_is_quiet(sdk: MagicMock) -> None:
    engine = DashscopeTranscriptionEngine(api_key="a")
    availability: list[bool] = []
    engine.add_availability_listener(availability.append)

    engine.update_api_key("b")
    engine.remove_availability_listener(availability.append)
    engine.update_api_key("")

    assert availability == []


def test_append_after_end_audio_is_ignored(sdk: MagicMock) -> None:
    handle, _ = _open(DashscopeTranscriptionEngine(api_key="k"))
    stream = sdk.return_value

    handle.append(AudioFrame(pcm16_bytes=b"\x00\x00"))
    handle.end_audio()
    handle.end_audio()
    handle.append(AudioFrame(pcm16_bytes=b"\x00\x00"))

    stream.send_audio_frame.assert_called_once_with(b"\x00\x00")
    stream.stop.assert_called_once()


def test_send_failure_reports_error(sdk: MagicMock) -> None:
    handle, collector = _open(DashscopeTranscriptionEngine(api_key="k"))
    sdk.return_value.send_audio_frame.side_effect = RuntimeError("websocket connection closed")

    handle.append(AudioFrame(pcm16_bytes=b"\x00\x00"))

    assert [error.code for error in collector.errors] == [NETWORK_ERROR]
