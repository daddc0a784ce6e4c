"""SQLite storage backend for conversations."""

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from tradeassist.llm.client import FunctionCall
from tradeassist.memory.schema import (
    Conversation,
    ConversationStatus,
    MessageRecord,
    make_title,
    utcnow,
)

_TIMESPEC = "microseconds"


def _ts(value: datetime) -> str:
    return value.isoformat(timespec=_TIMESPEC)


class ConversationStorage:
    """SQLite-based storage for conversations and their messages.

    Every operation opens its own connection, so a single instance can be
    shared by worker threads.
    """

    def __init__(self, db_path: str | Path):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _initialize_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL UNIQUE,
                    customer_id TEXT,
                    locale TEXT NOT NULL,
                    status TEXT NOT NULL,
                    title TEXT,
                    message_count INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL,
                    last_message_at TIMESTAMP NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    function_calls TEXT,
                    call_id TEXT,
                    name TEXT,
                    created_at TIMESTAMP NOT NULL,
                    FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_conversation "
                "ON messages(conversation_id, created_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversations_customer "
                "ON conversations(customer_id, last_message_at)"
            )

    @staticmethod
    def _row_to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            session_id=row["session_id"],
            customer_id=row["customer_id"],
            locale=row["locale"],
            status=row["status"],
            title=row["title"],
            message_count=row["message_count"],
            created_at=row["created_at"],
            last_message_at=row["last_message_at"],
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> MessageRecord:
        calls: list[FunctionCall] = []
        if row["function_calls"]:
            calls = [FunctionCall(**item) for item in json.loads(row["function_calls"])]
        return MessageRecord(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            function_calls=calls,
            call_id=row["call_id"],
            name=row["name"],
            created_at=row["created_at"],
        )

    def get_or_create(
        self,
        session_id: str,
        customer_id: str | None = None,
        locale: str = "ar",
    ) -> Conversation:
        """Return the conversation for a session, creating it on first use.

        Concurrent first requests for the same session resolve to one row
        through the unique session index.

        Args:
            session_id: Storefront session identifier
            customer_id: Authenticated customer, if any
            locale: Conversation locale

        Returns:
            The existing or newly created conversation
        """
        now = _ts(utcnow())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO conversations
                (id, session_id, customer_id, locale, status, message_count,
                 created_at, last_message_at)
                VALUES (?, ?, ?, ?, 'active', 0, ?, ?)
            """,
                (uuid.uuid4().hex, session_id, customer_id, locale, now, now),
            )
            if customer_id:
                # A guest session that later logs in keeps its conversation
                conn.execute(
                    "UPDATE conversations SET customer_id = ? "
                    "WHERE session_id = ? AND customer_id IS NULL",
                    (customer_id, session_id),
                )
            row = conn.execute(
                "SELECT * FROM conversations WHERE session_id = ?", (session_id,)
            ).fetchone()
        return self._row_to_conversation(row)

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID.

        Args:
            conversation_id: Conversation identifier

        Returns:
            Conversation or None if not found
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        return self._row_to_conversation(row) if row else None

    def find_by_session(self, session_id: str) -> Conversation | None:
        """Get a conversation by its session identifier."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE session_id = ?", (session_id,)
            ).fetchone()
        return self._row_to_conversation(row) if row else None

    def list_for_customer(self, customer_id: str, limit: int = 10) -> list[Conversation]:
        """List a customer's non-archived conversations, most recent activity first.

        Args:
            customer_id: Customer identifier
            limit: Maximum number of conversations to return

        Returns:
            List of conversations
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM conversations
                WHERE customer_id = ? AND status = 'active'
                ORDER BY last_message_at DESC
                LIMIT ?
            """,
                (customer_id, limit),
            ).fetchall()
        return [self._row_to_conversation(row) for row in rows]

    def set_status(self, conversation_id: str, status: ConversationStatus) -> bool:
        """Change a conversation's lifecycle status.

        Returns:
            True if the conversation exists
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE conversations SET status = ? WHERE id = ?",
                (status, conversation_id),
            )
            return cursor.rowcount > 0

    def insert_message(self, message: MessageRecord) -> MessageRecord | None:
        """Append a single message. See ``insert_messages``."""
        stored = self.insert_messages(message.conversation_id, [message])
        return stored[0] if stored is not None else None

    def insert_messages(
        self, conversation_id: str, messages: list[MessageRecord]
    ) -> list[MessageRecord] | None:
        """Append messages in one transaction and update the owning conversation.

        Either every message is stored or none is. Stored creation times are
        forced strictly past the conversation's latest message so history
        order follows append order.

        Args:
            conversation_id: Conversation identifier
            messages: Messages to append, in order

        Returns:
            The stored messages with their IDs, or None if the conversation is unknown
        """
        stored: list[MessageRecord] = []
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            conversation = conn.execute(
                "SELECT title FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
            if conversation is None:
                return None

            last = conn.execute(
                "SELECT MAX(created_at) FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()[0]
            floor = datetime.fromisoformat(last) if last is not None else None
            title = conversation["title"]

            for message in messages:
                created_at = message.created_at
                if floor is not None and created_at <= floor:
                    created_at = floor + timedelta(microseconds=1)
                floor = created_at

                calls = None
                if message.function_calls:
                    calls = json.dumps(
                        [asdict(fc) for fc in message.function_calls], ensure_ascii=False
                    )

                cursor = conn.execute(
                    """
                    INSERT INTO messages
                    (conversation_id, role, content, function_calls, call_id, name, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        conversation_id,
                        message.role,
                        message.content,
                        calls,
                        message.call_id,
                        message.name,
                        _ts(created_at),
                    ),
                )
                if title is None and message.role == "user" and message.content.strip():
                    title = make_title(message.content)

                message_id = cursor.lastrowid
                assert message_id is not None
                stored.append(
                    message.model_copy(
                        update={
                            "id": message_id,
                            "conversation_id": conversation_id,
                            "created_at": created_at,
                        }
                    )
                )

            if stored:
                conn.execute(
                    """
                    UPDATE conversations
                    SET message_count = message_count + ?, last_message_at = ?, title = ?
                    WHERE id = ?
                """,
                    (len(stored), _ts(floor), title, conversation_id),
                )

        return stored

    def load_messages(
        self,
        conversation_id: str,
        limit: int | None = None,
        include_system: bool = False,
    ) -> list[MessageRecord]:
        """Load the most recent messages of a conversation.

        Args:
            conversation_id: Conversation identifier
            limit: Maximum number of messages to return (None = all)
            include_system: Include messages with role ``system``

        Returns:
            List of messages in chronological order
        """
        query = "SELECT * FROM messages WHERE conversation_id = ?"
        params: list[Any] = [conversation_id]
        if not include_system:
            query += " AND role != 'system'"
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_message(row) for row in reversed(rows)]

    def prune_archived(self, days: int) -> int:
        """Delete archived conversations inactive for more than ``days`` days.

        Args:
            days: Retention period in days

        Returns:
            Number of conversations deleted
        """
        cutoff = _ts(utcnow() - timedelta(days=days))
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM conversations WHERE status = 'archived' AND last_message_at < ?",
                (cutoff,),
            )
            return cursor.rowcount
