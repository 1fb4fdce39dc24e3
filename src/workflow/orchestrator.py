"""
Tutor Orchestrator using LangGraph

Runs one tutoring turn as a LangGraph StateGraph:

    START ─┬─ audio ─▶ transcribe ─┬─ cleanup on ─▶ clean ─┐
           │                       └───────────────────────┤
           └─ text ────────────────────────────────────────┴▶ reply ─▶ speak ─▶ END

Every node is a blocking call to the provider and the nodes run strictly in
sequence.  Any exception aborts the run and is mapped to a ``TutorError``.
The turn is written to the bounded history store as soon as the reply exists
(before speech synthesis), and appended to the durable transcript log after
the run, best effort.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from ..agents.speech_agent.speech_agent import synthesize, to_base64
from ..agents.transcription_agent.transcription_agent import transcribe
from ..agents.tutor_agent.tutor_agent import clean_transcript, generate_reply
from ..core.errors import ErrorCode, TutorError, map_exception
from ..core.protocol import AskRequest
from ..core.validation import validate_ask_request
from ..memory.conversation_store import ConversationStore
from ..memory.transcript_log import TranscriptLog
from ..utils import config
from ..utils.logging import get_logger
from ..utils.tracing import log_run

logger = get_logger("orchestrator")


class TurnState(TypedDict, total=False):
    """Values flowing through the graph for one turn"""
    conversation_id: str
    answer_language: str
    speak_language: str
    audio: Optional[bytes]
    audio_filename: str
    audio_content_type: str
    transcript: str
    history: List[Dict[str, str]]
    reply: str
    audio_base64: str


class TutorPipeline:
    """
    Orchestrates transcribe → clean → reply → speak for one conversation turn.

    The pipeline owns no state between runs except the history store it was
    given; the compiled graph is reused across requests.
    """

    def __init__(
        self,
        store: ConversationStore,
        transcript_log: Optional[TranscriptLog] = None,
        clean: Optional[bool] = None,
        min_audio_bytes: Optional[int] = None,
    ):
        """
        Args:
            store: Bounded in-memory history shared by all requests
            transcript_log: Durable per-user log; None disables persistence
            clean: Force transcript cleanup on/off; None reads CLEAN_TRANSCRIPT
            min_audio_bytes: Override for the "too short" threshold
        """
        self.store = store
        self.transcript_log = transcript_log
        self._clean = clean
        self._min_audio_bytes = min_audio_bytes
        self.workflow = self._build_workflow()

    @property
    def clean_enabled(self) -> bool:
        if self._clean is not None:
            return self._clean
        return config.clean_transcript_enabled()

    @property
    def min_audio_bytes(self) -> int:
        if self._min_audio_bytes is not None:
            return self._min_audio_bytes
        return config.min_audio_bytes()

    # ── graph ─────────────────────────────────────────────────────────────────

    def _build_workflow(self):
        workflow = StateGraph(TurnState)

        workflow.add_node("transcribe", self._transcribe_node)
        workflow.add_node("clean", self._clean_node)
        workflow.add_node("reply", self._reply_node)
        workflow.add_node("speak", self._speak_node)

        workflow.add_conditional_edges(
            START,
            self._input_decision,
            {"audio": "transcribe", "text": "reply"},
        )
        workflow.add_conditional_edges(
            "transcribe",
            self._clean_decision,
            {"clean": "clean", "skip": "reply"},
        )
        workflow.add_edge("clean", "reply")
        workflow.add_edge("reply", "speak")
        workflow.add_edge("speak", END)

        return workflow.compile()

    def _input_decision(self, state: TurnState) -> str:
        return "audio" if state.get("audio") else "text"

    def _clean_decision(self, state: TurnState) -> str:
        if self.clean_enabled and state.get("transcript"):
            return "clean"
        return "skip"

    def _transcribe_node(self, state: TurnState) -> Dict[str, Any]:
        text = transcribe(
            state["audio"],
            state["speak_language"],
            filename=state.get("audio_filename", "speech.webm"),
            content_type=state.get("audio_content_type", "audio/webm"),
        )
        logger.info("Transcript (%d chars): %s", len(text), text[:80])
        return {"transcript": text}

    def _clean_node(self, state: TurnState) -> Dict[str, Any]:
        cleaned = clean_transcript(state["transcript"], state["speak_language"])
        return {"transcript": cleaned or state["transcript"]}

    def _reply_node(self, state: TurnState) -> Dict[str, Any]:
        user_text = (state.get("transcript") or "").strip()
        if not user_text:
            # silence or noise: nothing to answer
            raise TutorError(ErrorCode.NO_INPUT)

        history = self.store.get_history(state["conversation_id"])
        reply = generate_reply(user_text, state["answer_language"], history)
        self.store.save_turn(state["conversation_id"], user_text, reply)
        return {"transcript": user_text, "history": history, "reply": reply}

    def _speak_node(self, state: TurnState) -> Dict[str, Any]:
        audio = synthesize(state["reply"])
        return {"audio_base64": to_base64(audio)}

    # ── entry point ───────────────────────────────────────────────────────────

    def run(self, request: AskRequest) -> Dict[str, Any]:
        """
        Validate *request*, run the graph and shape the response body.

        Returns
        -------
        dict
            ``{"stt_model", "conversationId", "transcript", "text", "audioBase64"}``

        Raises
        ------
        TutorError
            Validation failures, or a mapped provider failure.
        """
        validate_ask_request(request, self.min_audio_bytes)

        conversation_id = request.conversation_id.strip()
        if request.history and self.store.seed(conversation_id, request.history):
            logger.info(
                "Seeded conversation %s with %d client-held turns",
                conversation_id, len(request.history),
            )

        initial: TurnState = {
            "conversation_id": conversation_id,
            "answer_language": request.resolved_answer_language,
            "speak_language": request.resolved_speak_language,
            "audio": request.audio,
            "audio_filename": request.audio_filename,
            "audio_content_type": request.audio_content_type,
            "transcript": request.text.strip(),
        }
        mode = "audio" if request.audio else "text"
        logger.info(
            "Starting %s turn: conversation=%s answer=%s speak=%s",
            mode, conversation_id, initial["answer_language"], initial["speak_language"],
        )

        started = time.monotonic()
        try:
            final = self.workflow.invoke(initial)
        except Exception as exc:
            error = map_exception(exc)
            if error.code == ErrorCode.PROCESSING_FAILED:
                logger.error("Turn failed for %s: %s", conversation_id, exc, exc_info=True)
            else:
                logger.warning("Turn rejected for %s: %s (%s)", conversation_id, error.code.value, exc)
            log_run(
                name="tutor_turn",
                inputs={"conversation_id": conversation_id, "mode": mode},
                outputs={},
                tags=["orchestrator", mode],
                error=f"{error.code.value}: {exc}",
            )
            raise error from exc

        elapsed = time.monotonic() - started
        logger.info("Turn complete for %s in %.2fs", conversation_id, elapsed)

        transcript = final.get("transcript", "")
        reply = final.get("reply", "")
        self._persist(request.user_id, conversation_id, transcript, reply)

        log_run(
            name="tutor_turn",
            inputs={"conversation_id": conversation_id, "mode": mode, "transcript": transcript},
            outputs={"text": reply[:200]},
            tags=["orchestrator", mode],
        )

        return {
            "stt_model": config.stt_model() if mode == "audio" else None,
            "conversationId": conversation_id,
            "transcript": transcript,
            "text": reply,
            "audioBase64": final.get("audio_base64", ""),
        }

    def _persist(self, user_id: Optional[str], conversation_id: str, user_text: str, reply: str) -> None:
        """Append the turn to the durable log; failures never reach the caller."""
        if self.transcript_log is None or not user_id:
            return
        try:
            self.transcript_log.append_turn(user_id, conversation_id, user_text, reply)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Failed to persist turn for user=%s conversation=%s: %s",
                user_id, conversation_id, exc, exc_info=True,
            )


def process_turn(
    request: AskRequest,
    store: ConversationStore,
    transcript_log: Optional[TranscriptLog] = None,
) -> Dict[str, Any]:
    """Run one turn with a throwaway pipeline (used by scripts and tests)."""
    return TutorPipeline(store, transcript_log).run(request)
