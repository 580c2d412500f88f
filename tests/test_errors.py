from __future__ import annotations

from errors import (
    AUTH_FAILED,
    ERROR_MESSAGES,
    NETWORK_ERROR,
    NO_SPEECH,
    PERMISSION_DENIED,
    RECOGNITION_CANCELLED,
    RECOGNIZER_UNAVAILABLE,
    PermissionDeniedError,
    VoiceTriggerError,
    classify_error,
    user_message,
)
from models import ErrorClass


def test_structured_codes_take_precedence_over_message() -> None:
    assert classify_error(NO_SPEECH, "boom") is ErrorClass.TRANSIENT
    assert classify_error(RECOGNITION_CANCELLED, "") is ErrorClass.TRANSIENT
    assert classify_error(RECOGNIZER_UNAVAILABLE, "please retry") is ErrorClass.FATAL
    assert classify_error(AUTH_FAILED, "") is ErrorClass.FATAL
    assert classify_error(NETWORK_ERROR, "no speech") is ErrorClass.RECOVERABLE


def test_message_fallback_without_code() -> None:
    assert classify_error("", "No speech detected") is ErrorClass.TRANSIENT
    assert classify_error("", "Retry later") is ErrorClass.TRANSIENT
    assert classify_error("", "Recognition request was canceled") is ErrorClass.TRANSIENT
    assert classify_error("", "Audio engine exploded") is ErrorClass.RECOVERABLE


def test_error_defaults_to_code_message() -> None:
    error = PermissionDeniedError()

    assert error.code == PERMISSION_DENIED
    assert str(error) == ERROR_MESSAGES[PERMISSION_DENIED]


def test_base_error_may_have_no_code() -> None:
    error = VoiceTriggerError("something odd")

    assert error.code == ""
    assert error.message == "something odd"


def test_user_message_prefers_known_copy() -> None:
    assert user_message(NETWORK_ERROR, "ECONNRESET") == ERROR_MESSAGES[NETWORK_ERROR]
    assert user_message("", "raw text") == "raw text"
    assert user_message("", "")
