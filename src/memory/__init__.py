"""Conversation memory: bounded in-process history and the durable SQLite log."""
from .conversation_store import ConversationStore
from .transcript_log import TranscriptLog

__all__ = ["ConversationStore", "TranscriptLog"]
