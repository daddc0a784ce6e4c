"""Pydantic models for conversation persistence."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tradeassist.llm.client import FunctionCall

MessageRole = Literal["user", "assistant", "function", "system"]
ConversationStatus = Literal["active", "archived"]

TITLE_LENGTH = 50


def utcnow() -> datetime:
    return datetime.now(UTC)


def make_title(content: str) -> str:
    """Derive a conversation title from the first user message."""
    text = " ".join(content.split())
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text


class Conversation(BaseModel):
    """A conversation between one storefront session and the assistant."""

    id: str
    session_id: str
    customer_id: str | None = None
    locale: str = "ar"
    status: ConversationStatus = "active"
    title: str | None = None
    message_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    last_message_at: datetime = Field(default_factory=utcnow)


class MessageRecord(BaseModel):
    """A persisted message. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None  # Auto-assigned by database
    conversation_id: str
    role: MessageRole
    content: str = ""
    function_calls: list[FunctionCall] = Field(default_factory=list)
    call_id: str | None = None  # For function result messages
    name: str | None = None  # Function name for function result messages
    created_at: datetime = Field(default_factory=utcnow)
