"""Speech-to-text for a child's recorded question."""

from src.core.languages import language_hint
from src.utils import config
from src.utils.logging import get_logger
from src.utils.tracing import traceable

from ..client import get_client

logger = get_logger(__name__)

TRANSCRIPTION_PROMPT = (
    "This is a child speaking {language} about school topics. "
    "Keep output in {language}."
)


@traceable(name="transcribe", run_type="llm", tags=["stt"])
def transcribe(
    audio: bytes,
    speak_language: str,
    filename: str = "speech.webm",
    content_type: str = "audio/webm",
) -> str:
    """
    Transcribe *audio* with the configured STT model.

    The language hint is only sent for languages we know the ISO code of;
    otherwise the service detects the language itself.
    """
    kwargs = {
        "file": (filename, audio, content_type),
        "model": config.stt_model(),
        "prompt": TRANSCRIPTION_PROMPT.format(language=speak_language),
    }
    hint = language_hint(speak_language)
    if hint:
        kwargs["language"] = hint

    logger.info(
        "Transcribing %d bytes (model=%s, hint=%s)", len(audio), kwargs["model"], hint
    )
    result = get_client().audio.transcriptions.create(**kwargs)
    return (getattr(result, "text", "") or "").strip()
