"""Core logic for the kids tutor agent.

Two chat-completion calls live here:

- ``clean_transcript``: optional pass that fixes obvious STT mistakes
- ``generate_reply``: the kid-safe tutoring answer, history-aware
"""

from typing import Dict, List, Optional

from ..client import get_client
from .prompts import build_cleanup_prompt, build_system_prompt
from src.utils import config
from src.utils.logging import get_logger
from src.utils.tracing import traceable

logger = get_logger(__name__)


def _completion_text(response) -> str:
    content = response.choices[0].message.content
    return (content or "").strip()


@traceable(name="clean_transcript", run_type="llm", tags=["tutor", "cleanup"])
def clean_transcript(text: str, speak_language: str) -> str:
    """
    Return *text* with obvious transcription errors corrected.

    An empty model answer keeps the original transcript.
    """
    if not text or not text.strip():
        return ""

    client = get_client()
    response = client.chat.completions.create(
        model=config.chat_model(),
        messages=[
            {"role": "system", "content": build_cleanup_prompt(speak_language)},
            {"role": "user", "content": text.strip()},
        ],
    )
    cleaned = _completion_text(response)
    if not cleaned:
        logger.info("Cleanup returned nothing; keeping raw transcript")
        return text.strip()
    return cleaned


@traceable(name="tutor_reply", run_type="llm", tags=["tutor", "reply"])
def generate_reply(
    user_text: str,
    answer_language: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> str:
    """
    Answer the child's question in *answer_language*.

    Parameters
    ----------
    user_text : str
        The (possibly cleaned) transcript or typed question.
    answer_language : str
        UI label of the language to answer in, e.g. "Tamil".
    history : list of {"role": str, "content": str}, optional
        Prior turns of the same conversation, oldest first.

    Returns
    -------
    str
        The reply text, stripped.  May be empty if the model returns nothing.
    """
    if not user_text or not user_text.strip():
        raise ValueError("user_text must be a non-empty string.")

    messages = [{"role": "system", "content": build_system_prompt(answer_language)}]
    messages.extend({"role": m["role"], "content": m["content"]} for m in history or [])
    messages.append({"role": "user", "content": user_text.strip()})

    logger.info(
        "Tutor agent: language=%s history=%d question=%s",
        answer_language, len(history or []), user_text[:80],
    )
    client = get_client()
    response = client.chat.completions.create(
        model=config.chat_model(),
        messages=messages,
        temperature=config.chat_temperature(),
    )
    answer = _completion_text(response)
    logger.info("Tutor agent returning answer (first 80 chars): %s", answer[:80])
    return answer
