"""Text-to-speech for the tutor's answer."""

import base64

from src.utils import config
from src.utils.logging import get_logger
from src.utils.tracing import traceable

from ..client import get_client

logger = get_logger(__name__)


@traceable(name="synthesize", run_type="llm", tags=["tts"])
def synthesize(text: str) -> bytes:
    """Return encoded audio (mp3 by default) speaking *text*."""
    if not text or not text.strip():
        raise ValueError("Cannot synthesize empty text.")

    response = get_client().audio.speech.create(
        model=config.tts_model(),
        voice=config.tts_voice(),
        input=text,
        response_format=config.tts_format(),
    )
    audio = response.content
    logger.info("Synthesized %d bytes of %s audio", len(audio), config.tts_format())
    return audio


def to_base64(audio: bytes) -> str:
    return base64.b64encode(audio).decode("ascii")
