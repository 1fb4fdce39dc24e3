"""
Tutor Request Protocol

Data structures passed between the HTTP layer, the validator and the
pipeline.  Field aliases match the camelCase keys the browser client sends.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Turn(BaseModel):
    """One user or assistant message in a dialogue"""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class AskRequest(BaseModel):
    """
    A single tutoring request, normalised from either a multipart form or a
    JSON body.
    """
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field("", alias="conversationId")
    answer_language: str = Field("", alias="answerLanguage")
    speak_language: str = Field("", alias="speakLanguage")
    target_language: str = Field("", alias="targetLanguage")
    text: str = Field("", description="Typed question for the text-only flow")
    user_id: Optional[str] = Field(None, alias="userId")
    history: List[Turn] = Field(default_factory=list, description="Client-held prior turns")

    audio: Optional[bytes] = Field(None, exclude=True)
    audio_filename: str = Field("speech.webm", exclude=True)
    audio_content_type: str = Field("audio/webm", exclude=True)
    from_form: bool = Field(False, exclude=True, description="True when the request came as multipart")

    @property
    def resolved_answer_language(self) -> str:
        return (self.answer_language or self.target_language or "").strip()

    @property
    def resolved_speak_language(self) -> str:
        return (self.speak_language or self.target_language or "").strip()


class AskResponse(BaseModel):
    """Response body of POST /api/ask"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "stt_model": "whisper-1",
                "conversationId": "c-123",
                "transcript": "Why is the sky blue?",
                "text": "Sunlight bounces off tiny bits of air...",
                "audioBase64": "SUQzBAAAAAAA...",
            }
        },
    )

    stt_model: Optional[str] = None
    conversation_id: str = Field(alias="conversationId")
    transcript: str
    text: str
    audio_base64: str = Field(alias="audioBase64")
