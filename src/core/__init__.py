"""Core request handling: protocol models, validation and the error vocabulary"""

from .errors import ErrorCode, TutorError, map_exception
from .languages import ISO_CODES, language_hint
from .protocol import AskRequest, AskResponse, Turn
from .validation import parse_history_field, validate_ask_request

__all__ = [
    "ErrorCode",
    "TutorError",
    "map_exception",
    "ISO_CODES",
    "language_hint",
    "AskRequest",
    "AskResponse",
    "Turn",
    # Validation
    "validate_ask_request",
    "parse_history_field",
]
