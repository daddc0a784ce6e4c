"""Async conversation store used by the chat pipeline."""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TypeVar

from tradeassist.errors import NotFoundError, StorageError
from tradeassist.memory.schema import Conversation, MessageRecord
from tradeassist.memory.storage import ConversationStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyedLocks:
    """Per-key ``asyncio.Lock`` objects that are dropped once no task holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class ConversationStore:
    """Conversation persistence with per-conversation append ordering.

    Blocking SQLite work runs in worker threads. Appends to one conversation
    are serialized through an ``asyncio.Lock`` keyed by conversation id, so
    two concurrent writers cannot interleave their messages. Locks only live
    while a task uses them.
    """

    def __init__(self, storage_path: str | Path):
        """Initialize the store.

        Args:
            storage_path: Path to SQLite database
        """
        self.storage = ConversationStorage(storage_path)
        self._append_locks = KeyedLocks()
        self._session_locks = KeyedLocks()

    async def _run(self, fn: Callable[..., T], *args: object) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            logger.error("Conversation storage failure in %s: %s", fn.__name__, e)
            raise StorageError(f"Conversation storage unavailable: {e}") from e

    async def get_or_create(
        self,
        session_id: str,
        customer_id: str | None = None,
        locale: str = "ar",
    ) -> Conversation:
        """Return the session's conversation, creating it if needed.

        Args:
            session_id: Storefront session identifier
            customer_id: Authenticated customer, if any
            locale: Conversation locale

        Returns:
            Conversation record
        """
        async with self._session_locks.hold(session_id):
            return await self._run(self.storage.get_or_create, session_id, customer_id, locale)

    async def get(self, conversation_id: str) -> Conversation:
        """Get a conversation by ID.

        Raises:
            NotFoundError: If the conversation does not exist
        """
        conversation = await self._run(self.storage.get_conversation, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def find_by_session(self, session_id: str) -> Conversation | None:
        """Get the conversation belonging to a session, if any."""
        return await self._run(self.storage.find_by_session, session_id)

    async def history(
        self,
        conversation_id: str,
        limit: int = 20,
        include_system: bool = False,
    ) -> list[MessageRecord]:
        """Load the last ``limit`` messages in chronological order.

        Args:
            conversation_id: Conversation identifier
            limit: Maximum number of messages
            include_system: Include ``system`` messages

        Returns:
            Messages, oldest first

        Raises:
            NotFoundError: If the conversation does not exist
        """
        await self.get(conversation_id)
        if limit <= 0:
            return []
        return await self._run(
            self.storage.load_messages, conversation_id, limit, include_system
        )

    async def append(self, conversation_id: str, message: MessageRecord) -> MessageRecord:
        """Append a message to a conversation.

        Args:
            conversation_id: Conversation identifier
            message: Message to append

        Returns:
            The stored message with its assigned ID and timestamp

        Raises:
            NotFoundError: If the conversation does not exist
        """
        if message.conversation_id != conversation_id:
            message = message.model_copy(update={"conversation_id": conversation_id})

        stored = await self.append_many(conversation_id, [message])
        return stored[0]

    async def append_many(
        self, conversation_id: str, messages: list[MessageRecord]
    ) -> list[MessageRecord]:
        """Append several messages atomically, in order.

        Raises:
            NotFoundError: If the conversation does not exist
        """
        async with self._append_locks.hold(conversation_id):
            stored = await self._run(self.storage.insert_messages, conversation_id, messages)

        if stored is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return stored

    async def customer_conversations(self, customer_id: str, limit: int = 10) -> list[Conversation]:
        """List a customer's active conversations, most recent first."""
        return await self._run(self.storage.list_for_customer, customer_id, limit)

    async def archive(self, conversation_id: str) -> Conversation:
        """Archive a conversation. Its messages are kept.

        Raises:
            NotFoundError: If the conversation does not exist
        """
        if not await self._run(self.storage.set_status, conversation_id, "archived"):
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return await self.get(conversation_id)

    async def prune_archived(self, days: int = 30) -> int:
        """Delete archived conversations older than ``days`` days.

        Returns:
            Number of conversations deleted
        """
        deleted = await self._run(self.storage.prune_archived, days)
        if deleted:
            logger.info("Pruned %d archived conversations", deleted)
        return deleted
