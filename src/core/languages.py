"""UI language labels and their ISO-639-1 codes for the STT language hint."""

from __future__ import annotations

from typing import Dict, Optional

ISO_CODES: Dict[str, str] = {
    "english":   "en",
    "hindi":     "hi",
    "tamil":     "ta",
    "telugu":    "te",
    "kannada":   "kn",
    "malayalam": "ml",
    "marathi":   "mr",
    "gujarati":  "gu",
    "bengali":   "bn",
    "punjabi":   "pa",
    "panjabi":   "pa",
}

_KNOWN_CODES = frozenset(ISO_CODES.values())


def language_hint(label: Optional[str]) -> Optional[str]:
    """
    Return the ISO code for a UI label ("Tamil" -> "ta").

    A bare known code is returned as-is.  Unknown labels give ``None`` so the
    transcription service auto-detects the language.
    """
    if not label:
        return None
    key = label.strip().lower()
    if key in ISO_CODES:
        return ISO_CODES[key]
    if key in _KNOWN_CODES:
        return key
    return None
