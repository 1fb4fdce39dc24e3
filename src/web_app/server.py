"""FastAPI server for the kids voice tutor."""

# Load .env before anything reads the environment (tracing decorators are
# evaluated at import time).
from dotenv import load_dotenv
load_dotenv()

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from src.core.errors import ErrorCode, TutorError
from src.core.protocol import AskRequest, AskResponse
from src.core.validation import parse_history_field
from src.memory.conversation_store import ConversationStore
from src.memory.transcript_log import TranscriptLog
from src.utils import config
from src.utils.logging import get_logger
from src.workflow.orchestrator import TutorPipeline

logger = get_logger(__name__)

app = FastAPI(
    title="Kids Voice Tutor",
    description=(
        "Voice tutoring for children: speak a question, get a simple, "
        "kid-safe answer back as text and audio in the chosen language."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def _build_transcript_log() -> Optional[TranscriptLog]:
    db_path = config.transcript_db_path()
    if db_path is None:
        return None
    logger.info("Durable transcript log at %s", db_path)
    return TranscriptLog(db_path)


# Shared state (singletons per server process)
_store = ConversationStore(max_turns=config.max_turns())
_transcript_log = _build_transcript_log()
_pipeline = TutorPipeline(_store, _transcript_log)

logger.info(
    "Tutor API ready. STT_MODEL=%s CLEAN_TRANSCRIPT=%s",
    config.stt_model(), config.clean_transcript_enabled(),
)


@app.exception_handler(TutorError)
async def tutor_error_handler(request: Request, exc: TutorError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ── Request / Response models ──────────────────────────────────────────────────

class NewConversationRequest(BaseModel):
    conversation_id: Optional[str] = Field(None, alias="conversationId")


class HistoryMessage(BaseModel):
    role: str
    content: str
    timestamp: Optional[str] = None


class HistoryResponse(BaseModel):
    conversationId: str
    messages: List[HistoryMessage]


# ── Request parsing ────────────────────────────────────────────────────────────

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


async def _read_ask_request(request: Request, header_user_id: Optional[str]) -> AskRequest:
    """Normalise a multipart or JSON ask into an ``AskRequest``."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        data: Dict[str, Any] = {k: v for k, v in form.items()}
        from_form = True
    else:
        try:
            body = await request.json()
        except ValueError:
            # malformed JSON or a body that is not UTF-8
            body = {}
        data = body if isinstance(body, dict) else {}
        from_form = False

    audio: Optional[bytes] = None
    filename, audio_type = "speech.webm", "audio/webm"
    upload = data.get("audio")
    if isinstance(upload, UploadFile):
        audio = await upload.read()
        filename = upload.filename or filename
        audio_type = upload.content_type or audio_type

    return AskRequest(
        conversation_id=_field(data, "conversationId"),
        answer_language=_field(data, "answerLanguage"),
        speak_language=_field(data, "speakLanguage"),
        target_language=_field(data, "targetLanguage"),
        text=_field(data, "text"),
        user_id=_field(data, "userId") or (header_user_id or "").strip() or None,
        history=parse_history_field(data.get("history")),
        audio=audio,
        audio_filename=filename,
        audio_content_type=audio_type,
        from_form=from_form,
    )


def _require_log() -> TranscriptLog:
    if _transcript_log is None:
        raise TutorError(ErrorCode.PERSISTENCE_DISABLED)
    return _transcript_log


def _require_user(user_id: Optional[str], header_user_id: Optional[str]) -> str:
    uid = (user_id or header_user_id or "").strip()
    if not uid:
        raise TutorError(ErrorCode.MISSING_USER)
    return uid


# ── Routes ─────────────────────────────────────────────────────────────────────

@app.get("/health", summary="Health check")
def health_check() -> dict:
    """Returns 200 OK when the service is running."""
    return {"status": "ok"}


@app.post("/api/ask", response_model=AskResponse, summary="Ask the tutor a question")
async def ask(request: Request, x_user_id: Optional[str] = Header(None)) -> dict:
    """
    Transcribe the child's question, answer it, and speak the answer back.

    Accepts ``multipart/form-data`` (``audio`` file plus ``answerLanguage``,
    ``speakLanguage`` / ``targetLanguage``, ``conversationId``, optional
    ``history`` JSON and ``text``) or a JSON body with the same keys for the
    text-only flow.  Errors come back as ``{"error": code, "message": ...}``.
    """
    ask_request = await _read_ask_request(request, x_user_id)
    logger.info(
        "POST /api/ask  conversation=%s  audio=%s  text=%d chars",
        ask_request.conversation_id,
        len(ask_request.audio) if ask_request.audio is not None else None,
        len(ask_request.text),
    )
    return await run_in_threadpool(_pipeline.run, ask_request)


@app.post("/api/new", summary="Start over: forget a conversation's history")
def new_conversation(body: Optional[NewConversationRequest] = None) -> dict:
    """Clear the in-memory history for ``conversationId``.  Always succeeds."""
    conversation_id = (body.conversation_id if body else None) or ""
    if conversation_id and _store.clear(conversation_id):
        logger.info("Cleared conversation %s", conversation_id)
    return {"ok": True}


@app.get(
    "/api/history/{conversation_id}",
    response_model=HistoryResponse,
    summary="Bounded in-memory history for a conversation",
)
def get_history(conversation_id: str) -> HistoryResponse:
    messages = _store.get_history(conversation_id)
    return HistoryResponse(
        conversationId=conversation_id,
        messages=[HistoryMessage(**m) for m in messages],
    )


@app.get("/api/conversations", summary="List a user's persisted conversations")
def list_conversations(
    userId: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
) -> dict:
    log = _require_log()
    uid = _require_user(userId, x_user_id)
    return {"userId": uid, "conversations": log.list_conversations(uid)}


@app.get(
    "/api/conversations/{conversation_id}",
    response_model=HistoryResponse,
    summary="Full persisted transcript of a user's conversation",
)
def get_conversation(
    conversation_id: str,
    userId: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
) -> HistoryResponse:
    """Every recorded turn, oldest first, with server-assigned timestamps."""
    log = _require_log()
    uid = _require_user(userId, x_user_id)
    messages = log.get_conversation(uid, conversation_id)
    return HistoryResponse(
        conversationId=conversation_id,
        messages=[HistoryMessage(**m) for m in messages],
    )


# Front-end files last so API routes take precedence
_static = config.static_dir()
if _static is not None and _static.is_dir():
    app.mount("/", StaticFiles(directory=str(_static), html=True), name="static")


# ── Entry point (local dev) ────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.web_app.server:app",
        host=config.server_host(),
        port=config.server_port(),
        reload=True,
    )
