"""
SQLite-backed durable transcript log, one per user and conversation.

Schema
------
messages : id INTEGER PK, user_id TEXT, conversation_id TEXT, role TEXT,
           content TEXT, timestamp TEXT

Rows are only ever inserted: the log has no trimming, update or delete path.
Timestamps are assigned here (UTC, ISO-8601), never by the client.

Usage
-----
    log = TranscriptLog(Path("data/transcripts.db"))
    log.append_turn("user-1", "conv-1", "user q", "assistant a")
    log.get_conversation("user-1", "conv-1")   # [{"role", "content", "timestamp"}, ...]
"""
from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List

_DEFAULT_DB = Path(__file__).resolve().parents[2] / "data" / "transcripts.db"


class TranscriptLog:
    """Append-only SQLite log of tutoring turns."""

    def __init__(self, db_path: Path = _DEFAULT_DB) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ── schema ────────────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit (or roll back) on exit, then close the connection."""
        with closing(self._connect()) as conn:
            with conn:
                yield conn

    def _init_schema(self) -> None:
        with self._transaction() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS messages (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id          TEXT    NOT NULL,
                    conversation_id  TEXT    NOT NULL,
                    role             TEXT    NOT NULL CHECK(role IN ('user', 'assistant')),
                    content          TEXT    NOT NULL,
                    timestamp        TEXT    NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_messages_user_conversation
                    ON messages(user_id, conversation_id, id);
            """)

    # ── public API ────────────────────────────────────────────────────────────

    def append_turn(
        self,
        user_id: str,
        conversation_id: str,
        user_text: str,
        assistant_text: str,
    ) -> None:
        """Persist a user/assistant exchange as two rows in one transaction."""
        now = datetime.now(timezone.utc).isoformat()
        with self._transaction() as conn:
            conn.executemany(
                "INSERT INTO messages (user_id, conversation_id, role, content, timestamp) "
                "VALUES (?,?,?,?,?)",
                [
                    (user_id, conversation_id, "user",      user_text,      now),
                    (user_id, conversation_id, "assistant", assistant_text, now),
                ],
            )

    def get_conversation(self, user_id: str, conversation_id: str) -> List[Dict[str, str]]:
        """Every message of the conversation, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT role, content, timestamp FROM messages
                WHERE user_id = ? AND conversation_id = ?
                ORDER BY id ASC
                """,
                (user_id, conversation_id),
            ).fetchall()
        return [
            {"role": r["role"], "content": r["content"], "timestamp": r["timestamp"]}
            for r in rows
        ]

    def list_conversations(self, user_id: str) -> List[str]:
        """Conversation ids for *user_id*, most recently active first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT conversation_id, MAX(id) AS last_id FROM messages
                WHERE user_id = ?
                GROUP BY conversation_id
                ORDER BY last_id DESC
                """,
                (user_id,),
            ).fetchall()
        return [r["conversation_id"] for r in rows]

    def count_messages(self, user_id: str, conversation_id: str) -> int:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS cnt FROM messages WHERE user_id = ? AND conversation_id = ?",
                (user_id, conversation_id),
            ).fetchone()
        return row["cnt"] if row else 0
