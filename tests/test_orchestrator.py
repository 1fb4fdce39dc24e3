"""Tests for the LangGraph tutor pipeline in src/workflow/orchestrator.py"""

from unittest.mock import MagicMock, patch

import pytest

from src.core.errors import ErrorCode, TutorError
from src.core.protocol import AskRequest, Turn
from src.memory.conversation_store import ConversationStore
from src.workflow.orchestrator import TutorPipeline, process_turn

_MOD = "src.workflow.orchestrator"


def _audio_request(**overrides) -> AskRequest:
    fields = {
        "conversation_id": "conv-1",
        "answer_language": "English",
        "speak_language": "Hindi",
        "audio": b"\x1a" * 6000,
        "from_form": True,
    }
    fields.update(overrides)
    return AskRequest(**fields)


def _text_request(text="What is a rainbow?", **overrides) -> AskRequest:
    fields = {
        "conversation_id": "conv-1",
        "answer_language": "English",
        "speak_language": "English",
        "text": text,
    }
    fields.update(overrides)
    return AskRequest(**fields)


@pytest.fixture
def agents():
    """Patch the four provider calls and record the order they run in."""
    calls = []
    with patch(f"{_MOD}.transcribe") as mock_stt, \
         patch(f"{_MOD}.clean_transcript") as mock_clean, \
         patch(f"{_MOD}.generate_reply") as mock_reply, \
         patch(f"{_MOD}.synthesize") as mock_tts:
        mock_stt.side_effect = lambda *a, **k: calls.append("transcribe") or "kya hai rainbow"
        mock_clean.side_effect = lambda *a, **k: calls.append("clean") or "What is a rainbow?"
        mock_reply.side_effect = lambda *a, **k: calls.append("reply") or "A rainbow is colours in the sky!"
        mock_tts.side_effect = lambda *a, **k: calls.append("synthesize") or b"mp3"
        yield {
            "calls": calls,
            "transcribe": mock_stt,
            "clean": mock_clean,
            "reply": mock_reply,
            "synthesize": mock_tts,
        }


@pytest.fixture
def store():
    return ConversationStore()


class TestAudioTurn:

    def test_calls_run_in_order_without_cleanup(self, agents, store):
        TutorPipeline(store, clean=False).run(_audio_request())
        assert agents["calls"] == ["transcribe", "reply", "synthesize"]

    def test_calls_run_in_order_with_cleanup(self, agents, store):
        TutorPipeline(store, clean=True).run(_audio_request())
        assert agents["calls"] == ["transcribe", "clean", "reply", "synthesize"]

    def test_response_shape(self, agents, store):
        result = TutorPipeline(store, clean=False).run(_audio_request())
        assert result["conversationId"] == "conv-1"
        assert result["transcript"] == "kya hai rainbow"
        assert result["text"] == "A rainbow is colours in the sky!"
        assert result["audioBase64"] == "bXAz"  # base64 of b"mp3"
        assert result["stt_model"]

    def test_cleaned_transcript_is_used(self, agents, store):
        result = TutorPipeline(store, clean=True).run(_audio_request())
        assert result["transcript"] == "What is a rainbow?"
        assert agents["reply"].call_args.args[0] == "What is a rainbow?"

    def test_speak_language_passed_to_stt(self, agents, store):
        TutorPipeline(store, clean=False).run(_audio_request(speak_language="Tamil"))
        assert agents["transcribe"].call_args.args[1] == "Tamil"

    def test_answer_language_passed_to_reply(self, agents, store):
        TutorPipeline(store, clean=False).run(_audio_request(answer_language="Telugu"))
        assert agents["reply"].call_args.args[1] == "Telugu"

    def test_empty_transcript_skips_cleanup_and_rejects(self, agents, store):
        agents["transcribe"].side_effect = lambda *a, **k: ""
        with pytest.raises(TutorError) as info:
            TutorPipeline(store, clean=True).run(_audio_request())
        assert info.value.code == ErrorCode.NO_INPUT
        agents["clean"].assert_not_called()
        agents["reply"].assert_not_called()

    def test_clean_flag_read_from_env(self, agents, store, monkeypatch):
        monkeypatch.setenv("CLEAN_TRANSCRIPT", "true")
        TutorPipeline(store).run(_audio_request())
        assert "clean" in agents["calls"]


class TestTextTurn:

    def test_skips_transcription(self, agents, store):
        result = TutorPipeline(store, clean=True).run(_text_request())
        assert agents["calls"] == ["reply", "synthesize"]
        assert result["transcript"] == "What is a rainbow?"
        assert result["stt_model"] is None

    def test_target_language_fallback(self, agents, store):
        req = _text_request(answer_language="", speak_language="", target_language="Marathi")
        TutorPipeline(store).run(req)
        assert agents["reply"].call_args.args[1] == "Marathi"


class TestHistory:

    def test_turn_saved_to_store(self, agents, store):
        TutorPipeline(store, clean=False).run(_text_request())
        assert store.get_history("conv-1") == [
            {"role": "user", "content": "What is a rainbow?"},
            {"role": "assistant", "content": "A rainbow is colours in the sky!"},
        ]

    def test_prior_history_sent_to_reply(self, agents, store):
        store.save_turn("conv-1", "What is rain?", "Water from clouds.")
        TutorPipeline(store, clean=False).run(_text_request())
        history = agents["reply"].call_args.args[2]
        assert history == [
            {"role": "user", "content": "What is rain?"},
            {"role": "assistant", "content": "Water from clouds."},
        ]

    def test_history_bounded_across_many_turns(self, agents, store):
        pipeline = TutorPipeline(store, clean=False)
        for i in range(10):
            pipeline.run(_text_request(text=f"Question {i}"))
            assert len(store.get_history("conv-1")) <= 12

    def test_client_history_seeds_empty_conversation(self, agents, store):
        req = _text_request(history=[
            Turn(role="user", content="Earlier Q"),
            Turn(role="assistant", content="Earlier A"),
        ])
        TutorPipeline(store).run(req)
        sent = agents["reply"].call_args.args[2]
        assert sent[0]["content"] == "Earlier Q"

    def test_client_history_ignored_when_server_has_some(self, agents, store):
        store.save_turn("conv-1", "Server Q", "Server A")
        req = _text_request(history=[Turn(role="user", content="Client Q")])
        TutorPipeline(store).run(req)
        sent = agents["reply"].call_args.args[2]
        assert [m["content"] for m in sent] == ["Server Q", "Server A"]

    def test_turn_saved_even_if_speech_fails(self, agents, store):
        agents["synthesize"].side_effect = RuntimeError("tts down")
        with pytest.raises(TutorError) as info:
            TutorPipeline(store).run(_text_request())
        assert info.value.code == ErrorCode.PROCESSING_FAILED
        assert len(store.get_history("conv-1")) == 2


class TestErrors:

    def test_validation_runs_before_any_call(self, agents, store):
        with pytest.raises(TutorError) as info:
            TutorPipeline(store).run(_audio_request(conversation_id=""))
        assert info.value.code == ErrorCode.MISSING_CONVERSATION
        assert agents["calls"] == []

    def test_short_audio_rejected_locally(self, agents, store):
        with pytest.raises(TutorError) as info:
            TutorPipeline(store, min_audio_bytes=5000).run(_audio_request(audio=b"x" * 10))
        assert info.value.code == ErrorCode.AUDIO_TOO_SHORT
        agents["transcribe"].assert_not_called()

    def test_provider_too_short_mapped(self, agents, store):
        agents["transcribe"].side_effect = RuntimeError("Audio file is too short. Minimum is 0.1s")
        with pytest.raises(TutorError) as info:
            TutorPipeline(store).run(_audio_request())
        assert info.value.code == ErrorCode.AUDIO_TOO_SHORT
        assert info.value.status_code == 400

    def test_provider_invalid_language_mapped(self, agents, store):
        agents["transcribe"].side_effect = ValueError("Invalid language 'xx'")
        with pytest.raises(TutorError) as info:
            TutorPipeline(store).run(_audio_request())
        assert info.value.code == ErrorCode.INVALID_LANGUAGE

    def test_other_failure_is_processing_failed(self, agents, store):
        agents["reply"].side_effect = ConnectionError("network unreachable")
        with pytest.raises(TutorError) as info:
            TutorPipeline(store).run(_text_request())
        assert info.value.code == ErrorCode.PROCESSING_FAILED
        assert info.value.status_code == 500
        agents["synthesize"].assert_not_called()
        assert store.get_history("conv-1") == []


class TestPersistence:

    def test_appends_when_user_known(self, agents, store):
        log = MagicMock()
        TutorPipeline(store, log).run(_text_request(user_id="kid-7"))
        log.append_turn.assert_called_once_with(
            "kid-7", "conv-1", "What is a rainbow?", "A rainbow is colours in the sky!"
        )

    def test_skipped_without_user(self, agents, store):
        log = MagicMock()
        TutorPipeline(store, log).run(_text_request())
        log.append_turn.assert_not_called()

    def test_failure_does_not_fail_request(self, agents, store):
        log = MagicMock()
        log.append_turn.side_effect = RuntimeError("disk full")
        result = TutorPipeline(store, log).run(_text_request(user_id="kid-7"))
        assert result["text"] == "A rainbow is colours in the sky!"

    def test_real_log_round_trip(self, agents, store, tmp_path):
        from src.memory.transcript_log import TranscriptLog

        log = TranscriptLog(tmp_path / "t.db")
        process_turn(_text_request(user_id="kid-7"), store, log)
        rows = log.get_conversation("kid-7", "conv-1")
        assert [r["role"] for r in rows] == ["user", "assistant"]
