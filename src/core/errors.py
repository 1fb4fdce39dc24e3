"""
Error vocabulary for the tutor API.

Every failure the client can see is a ``TutorError`` carrying one of the
``ErrorCode`` values below.  The HTTP layer renders it as
``{"error": code, "message": message}`` with the code's status.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from openai import APIError


class ErrorCode(str, Enum):
    """Client-facing error codes"""
    MISSING_CONVERSATION = "missing_conversation"
    MISSING_LANGUAGE = "missing_language"
    AUDIO_TOO_SHORT = "audio_too_short"
    NO_INPUT = "no_input"
    INVALID_LANGUAGE = "invalid_language"
    PROCESSING_FAILED = "processing_failed"
    MISSING_USER = "missing_user"
    PERSISTENCE_DISABLED = "persistence_disabled"


# code -> (HTTP status, default message)
_ERRORS: Dict[ErrorCode, Tuple[int, str]] = {
    ErrorCode.MISSING_CONVERSATION: (400, "No conversationId provided."),
    ErrorCode.MISSING_LANGUAGE: (400, "Please select both Speaking and Answer languages."),
    ErrorCode.AUDIO_TOO_SHORT: (400, "Please record at least 1 second of audio."),
    ErrorCode.NO_INPUT: (400, "Please record audio or type a question."),
    ErrorCode.INVALID_LANGUAGE: (400, "Unsupported language code. Please pick a different language."),
    ErrorCode.PROCESSING_FAILED: (500, "Something went wrong while processing audio."),
    ErrorCode.MISSING_USER: (400, "No userId provided."),
    ErrorCode.PERSISTENCE_DISABLED: (404, "Conversation persistence is not enabled."),
}

_PROVIDER_TOO_SHORT_MESSAGE = "Audio too short. Please hold for at least 1 second."


class TutorError(Exception):
    """Application error with a fixed client-facing code."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = ErrorCode(code)
        self.status_code, default_message = _ERRORS[self.code]
        self.message = message or default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code.value, "message": self.message}


def _provider_message(exc: BaseException) -> str:
    """Best available error text: the API body's message, else str(exc)."""
    if isinstance(exc, APIError) and isinstance(exc.body, dict):
        body = exc.body
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return str(nested["message"])
        if body.get("message"):
            return str(body["message"])
    return getattr(exc, "message", None) or str(exc)


def map_exception(exc: BaseException) -> TutorError:
    """
    Translate a failure raised during the pipeline into a ``TutorError``.

    ``TutorError`` passes through unchanged.  Otherwise the provider message
    is matched on substrings: "shorter than" / "too short" selects
    ``audio_too_short``, "invalid" together with "language" selects
    ``invalid_language``, and anything else is ``processing_failed``.
    """
    if isinstance(exc, TutorError):
        return exc

    msg = _provider_message(exc).lower()
    if "shorter than" in msg or "too short" in msg:
        return TutorError(ErrorCode.AUDIO_TOO_SHORT, _PROVIDER_TOO_SHORT_MESSAGE)
    if "invalid" in msg and "language" in msg:
        return TutorError(ErrorCode.INVALID_LANGUAGE)
    return TutorError(ErrorCode.PROCESSING_FAILED)
