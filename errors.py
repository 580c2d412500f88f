"""Shared error codes, user-facing messages and the recognition error table."""

from __future__ import annotations

from models import ErrorClass

PERMISSION_DENIED = "PERMISSION_DENIED"
MICROPHONE_PERMISSION_DENIED = "MICROPHONE_PERMISSION_DENIED"
SPEECH_PERMISSION_DENIED = "SPEECH_PERMISSION_DENIED"
RECOGNIZER_UNAVAILABLE = "RECOGNIZER_UNAVAILABLE"
AUDIO_CAPTURE_FAILED = "AUDIO_CAPTURE_FAILED"
ROUTE_RESTART_FAILED = "ROUTE_RESTART_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"
NO_SPEECH = "NO_SPEECH"
RECOGNITION_CANCELLED = "RECOGNITION_CANCELLED"
RETRY_REQUESTED = "RETRY_REQUESTED"
INVALID_PHRASE = "INVALID_PHRASE"
NO_SHUTTER_TARGET = "NO_SHUTTER_TARGET"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone and speech permissions are required before listening can start.",
    MICROPHONE_PERMISSION_DENIED: "Microphone permission is required so the app can hear you.",
    SPEECH_PERMISSION_DENIED: "Speech recognition permission is required to listen for the trigger phrase.",
    RECOGNIZER_UNAVAILABLE: "Speech recognition is not available right now.",
    AUDIO_CAPTURE_FAILED: "The microphone could not be opened.",
    ROUTE_RESTART_FAILED: "Listening stopped after the audio device changed.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    ASR_PROTOCOL_ERROR: "ASR response format is invalid.",
    NO_SPEECH: "No speech detected.",
    RECOGNITION_CANCELLED: "Recognition was cancelled.",
    RETRY_REQUESTED: "Recognizer asked for a retry.",
    INVALID_PHRASE: "Use 2 to 12 letters or spaces.",
    NO_SHUTTER_TARGET: "No camera window received the shutter key.",
}

# Structured codes are authoritative. Message markers only apply when the
# engine reported no code at all; they match English descriptions.
TRANSIENT_ERROR_CODES = frozenset({NO_SPEECH, RECOGNITION_CANCELLED, RETRY_REQUESTED})
FATAL_ERROR_CODES = frozenset(
    {
        RECOGNIZER_UNAVAILABLE,
        PERMISSION_DENIED,
        MICROPHONE_PERMISSION_DENIED,
        SPEECH_PERMISSION_DENIED,
        AUTH_FAILED,
    }
)
TRANSIENT_MESSAGE_MARKERS = ("no speech", "speech detected", "retry", "cancel")


class VoiceTriggerError(Exception):
    """Base error carrying one of the codes above, or no code at all."""

    default_code = ""

    def __init__(self, message: str = "", code: str = "") -> None:
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES.get(self.code, self.code)
        super().__init__(self.message)


class PermissionDeniedError(VoiceTriggerError):
    default_code = PERMISSION_DENIED


class RecognizerUnavailableError(VoiceTriggerError):
    default_code = RECOGNIZER_UNAVAILABLE


class AudioCaptureError(VoiceTriggerError):
    default_code = AUDIO_CAPTURE_FAILED


class InvalidPhraseError(VoiceTriggerError):
    default_code = INVALID_PHRASE


def classify_error(code: str, message: str) -> ErrorClass:
    if code in TRANSIENT_ERROR_CODES:
        return ErrorClass.TRANSIENT
    if code in FATAL_ERROR_CODES:
        return ErrorClass.FATAL
    if code:
        return ErrorClass.RECOVERABLE
    low = message.lower()
    if any(marker in low for marker in TRANSIENT_MESSAGE_MARKERS):
        return ErrorClass.TRANSIENT
    return ErrorClass.RECOVERABLE


def user_message(code: str, message: str = "") -> str:
    return ERROR_MESSAGES.get(code) or message or "Something went wrong while starting the listener."
