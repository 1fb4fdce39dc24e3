"""
Request validation for POST /api/ask.

Public helpers
--------------
- ``validate_ask_request(request, min_audio_bytes)`` → None, raises TutorError
- ``parse_history_field(raw)``                       → list[Turn]

Checks run in a fixed order so the client always sees the first problem:
conversation id, then languages, then audio length / presence of input.
The audio byte threshold is a proxy for "too short to transcribe".
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import ValidationError

from .errors import ErrorCode, TutorError
from .protocol import AskRequest, Turn
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_AUDIO_BYTES = 5000


# ── Public API ─────────────────────────────────────────────────────────────────

def validate_ask_request(
    request: AskRequest,
    min_audio_bytes: int = DEFAULT_MIN_AUDIO_BYTES,
) -> None:
    """
    Reject an ask request that cannot be processed.

    Raises
    ------
    TutorError
        ``missing_conversation`` when the conversation id is blank,
        ``missing_language`` when the answer or speaking language is blank
        (``targetLanguage`` fills either),
        ``audio_too_short`` when audio is smaller than *min_audio_bytes*, or
        when a multipart request carries neither audio nor text,
        ``no_input`` when a JSON request has no text.
    """
    if not request.conversation_id.strip():
        raise TutorError(ErrorCode.MISSING_CONVERSATION)

    if not request.resolved_answer_language or not request.resolved_speak_language:
        raise TutorError(ErrorCode.MISSING_LANGUAGE)

    if request.audio is not None:
        if len(request.audio) < min_audio_bytes:
            raise TutorError(ErrorCode.AUDIO_TOO_SHORT)
        return

    if not request.text.strip():
        if request.from_form:
            raise TutorError(ErrorCode.AUDIO_TOO_SHORT)
        raise TutorError(ErrorCode.NO_INPUT)


def parse_history_field(raw: Any) -> List[Turn]:
    """
    Decode the optional client-held history.

    Accepts a JSON string or an already-decoded list.  Entries that are not
    user/assistant turns with non-empty text are dropped; a payload that is
    not a list is ignored entirely.
    """
    if raw is None or raw == "":
        return []

    data: Optional[Any] = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring history field: not valid JSON")
            return []

    if not isinstance(data, list):
        logger.warning("Ignoring history field: expected a list, got %s", type(data).__name__)
        return []

    turns: List[Turn] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if not isinstance(content, str) or not content.strip():
            continue
        try:
            turns.append(Turn(role=item.get("role"), content=content.strip()))
        except ValidationError:
            continue
    return turns
