"""
Tutor agents: thin wrappers over the OpenAI speech and chat endpoints.

Each call is synchronous and raises whatever the SDK raises; error mapping
happens in the orchestrator.
"""

from .transcription_agent.transcription_agent import transcribe
from .tutor_agent.tutor_agent import clean_transcript, generate_reply
from .speech_agent.speech_agent import synthesize, to_base64

__all__ = [
    "transcribe",
    "clean_transcript",
    "generate_reply",
    "synthesize",
    "to_base64",
]
