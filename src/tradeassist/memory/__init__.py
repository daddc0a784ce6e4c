"""Conversation persistence for tradeassist.

Provides SQLite-backed storage of storefront conversations and their
messages, with a per-conversation serialized append path so concurrent
turns of one conversation keep a strictly increasing message order.

Components:

- :class:`ConversationStore` - Async API used by the chat pipeline and routes
- :class:`ConversationStorage` - SQLite storage backend with WAL mode
"""

from tradeassist.memory.manager import ConversationStore
from tradeassist.memory.schema import Conversation, MessageRecord
from tradeassist.memory.storage import ConversationStorage

__all__ = ["Conversation", "ConversationStorage", "ConversationStore", "MessageRecord"]
