"""API routes for the tradeassist server."""

import json
from typing import Any, Literal

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from sse_starlette.sse import EventSourceResponse

from tradeassist.chat.factory import create_orchestrator
from tradeassist.chat.frames import DONE, Frame
from tradeassist.chat.orchestrator import ChatOrchestrator, ChatRequest
from tradeassist.commerce.models import CartItem
from tradeassist.config.schema import TradeAssistConfig
from tradeassist.errors import NotFoundError
from tradeassist.memory.schema import Conversation, MessageRecord
from tradeassist.ratelimit.limiter import client_identity

MAX_MESSAGE_CHARS = 4000


class ChatBody(BaseModel):
    """Request body for the chat endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=MAX_MESSAGE_CHARS)
    session_id: str | None = Field(default=None, alias="sessionId")
    customer_id: str | None = Field(default=None, alias="customerId")
    locale: Literal["ar", "en"] = "ar"
    cart_items: list[CartItem] = Field(default_factory=list, alias="cartItems")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    model: str
    version: str


def _message_dict(record: MessageRecord) -> dict[str, Any]:
    body: dict[str, Any] = {
        "id": record.id,
        "role": record.role,
        "content": record.content,
        "createdAt": record.created_at.isoformat(),
    }
    if record.function_calls:
        body["functionCalls"] = [
            {"id": c.id, "name": c.name, "arguments": c.arguments} for c in record.function_calls
        ]
    if record.role == "function":
        body["name"] = record.name
        body["callId"] = record.call_id
    return body


def _conversation_dict(conversation: Conversation) -> dict[str, Any]:
    return {
        "conversationId": conversation.id,
        "sessionId": conversation.session_id,
        "customerId": conversation.customer_id,
        "title": conversation.title,
        "status": conversation.status,
        "locale": conversation.locale,
        "messageCount": conversation.message_count,
        "createdAt": conversation.created_at.isoformat(),
        "lastMessageAt": conversation.last_message_at.isoformat(),
    }


def _sse_data(frame: Frame) -> str:
    if frame == DONE:
        return DONE
    return json.dumps(frame, ensure_ascii=False, default=str)


def create_router(
    config: TradeAssistConfig, orchestrator: ChatOrchestrator | None = None
) -> APIRouter:
    """Create API router with a configured chat pipeline.

    Args:
        config: TradeAssist configuration
        orchestrator: Prebuilt orchestrator (built from ``config`` if None)

    Returns:
        Configured API router
    """
    router = APIRouter()

    if orchestrator is None:
        orchestrator = create_orchestrator(config)
    store = orchestrator.store

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        from tradeassist import __version__

        return HealthResponse(status="healthy", model=config.model.name, version=__version__)

    @router.post("/chat")
    async def chat(body: ChatBody, request: Request) -> EventSourceResponse:
        """Chat endpoint streaming frames as Server-Sent Events.

        Rate limiting and conversation loading happen before the response
        starts, so their failures are plain JSON errors. Everything after
        that is reported inside the stream.
        """
        turn = await orchestrator.begin(
            ChatRequest(
                message=body.message,
                session_id=body.session_id,
                customer_id=body.customer_id,
                locale=body.locale,
                cart_items=body.cart_items,
            ),
            caller=client_identity(request),
        )

        async def event_generator() -> Any:
            async for frame in orchestrator.stream(turn):
                yield {"data": _sse_data(frame)}

        return EventSourceResponse(
            event_generator(),
            headers={"X-Session-Id": turn.session_id, "Cache-Control": "no-cache"},
        )

    @router.get("/conversations/{session_id}")
    async def conversation_history(
        session_id: str, limit: int = Query(default=50, ge=1)
    ) -> dict[str, Any]:
        """Messages of a session's conversation, oldest first."""
        conversation = await store.find_by_session(session_id)
        if conversation is None:
            raise NotFoundError(f"No conversation for session {session_id}")

        records = await store.history(
            conversation.id, limit=min(limit, config.chat.history_api_limit)
        )
        return {
            "conversationId": conversation.id,
            "sessionId": conversation.session_id,
            "status": conversation.status,
            "title": conversation.title,
            "messages": [_message_dict(r) for r in records],
        }

    @router.post("/conversations/{session_id}/archive")
    async def archive_conversation(session_id: str) -> dict[str, Any]:
        """Archive a session's conversation."""
        conversation = await store.find_by_session(session_id)
        if conversation is None:
            raise NotFoundError(f"No conversation for session {session_id}")
        archived = await store.archive(conversation.id)
        return _conversation_dict(archived)

    @router.get("/customers/{customer_id}/conversations")
    async def customer_conversations(
        customer_id: str, limit: int = Query(default=10, ge=1, le=50)
    ) -> dict[str, Any]:
        """A customer's active conversations, most recent first."""
        conversations = await store.customer_conversations(customer_id, limit)
        return {
            "customerId": customer_id,
            "conversations": [_conversation_dict(c) for c in conversations],
        }

    return router
