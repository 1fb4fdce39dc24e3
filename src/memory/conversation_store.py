"""
In-memory bounded conversation history.

Each conversation keeps only its most recent ``max_turns`` question/answer
pairs (``max_turns * 2`` messages); older messages are dropped on append.
Nothing is persisted, so history is lost on restart.  There is no locking:
a single conversation is not expected to be driven concurrently, and the last
writer wins.

Usage
-----
    store = ConversationStore()                  # 6 pairs per conversation
    history = store.get_history(cid)             # [{"role": ..., "content": ...}, ...]
    store.save_turn(cid, "user q", "assistant a")
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Union

from src.core.protocol import Turn

DEFAULT_MAX_TURNS = 6

Message = Dict[str, str]


class ConversationStore:
    """Conversation id -> bounded list of ``{"role", "content"}`` messages."""

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._chats: Dict[str, List[Message]] = {}

    @property
    def max_messages(self) -> int:
        return self.max_turns * 2

    def get_history(self, conversation_id: str) -> List[Message]:
        """
        Return the stored messages for *conversation_id*, oldest first,
        ready to splice into OpenAI ``messages``.  Unknown ids give ``[]``.
        """
        return [dict(m) for m in self._chats.get(conversation_id, [])]

    def save_turn(self, conversation_id: str, user_text: str, assistant_text: str) -> None:
        """Append a user/assistant pair and trim to the most recent pairs."""
        history = self._chats.get(conversation_id, [])
        history.append({"role": "user", "content": user_text})
        history.append({"role": "assistant", "content": assistant_text})
        self._chats[conversation_id] = history[-self.max_messages:]

    def seed(self, conversation_id: str, turns: Iterable[Union[Turn, Message]]) -> bool:
        """
        Install client-held history for a conversation the server has no
        record of (e.g. after a restart).  Returns ``True`` if seeded; an
        existing conversation is left untouched.
        """
        if self._chats.get(conversation_id):
            return False
        messages: List[Message] = []
        for turn in turns:
            if isinstance(turn, Turn):
                messages.append({"role": turn.role, "content": turn.content})
            else:
                messages.append({"role": turn["role"], "content": turn["content"]})
        if not messages:
            return False
        self._chats[conversation_id] = messages[-self.max_messages:]
        return True

    def clear(self, conversation_id: str) -> bool:
        """Forget a conversation.  Returns ``True`` if it existed."""
        return self._chats.pop(conversation_id, None) is not None

    def has(self, conversation_id: str) -> bool:
        return conversation_id in self._chats

    def list_conversations(self) -> List[str]:
        return list(self._chats.keys())

    def __len__(self) -> int:
        return len(self._chats)
