"""Chat turn orchestration: limits, history, retrieval, generation and tools."""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum

from tradeassist.chat.frames import DONE, Frame, error_frame, text_frame, visual_frame
from tradeassist.chat.sanitizer import OutputSanitizer
from tradeassist.commerce.catalog import Catalog
from tradeassist.commerce.models import CartItem
from tradeassist.config.schema import ChatConfig, RateLimitConfig, RetrievalConfig
from tradeassist.errors import QuotaExceeded, TradeAssistError
from tradeassist.llm.client import FunctionCall, GenerationBackend, Message
from tradeassist.memory.manager import ConversationStore
from tradeassist.memory.schema import Conversation, MessageRecord
from tradeassist.rag.index import SemanticIndex
from tradeassist.rag.prompt import CallerProfile, PromptAssembler, format_context
from tradeassist.rag.retrieval import RetrievalBundle, RetrievalService, bounded
from tradeassist.ratelimit.limiter import RateLimiter, RateLimitPolicy
from tradeassist.tools.base import CallContext, FunctionResult
from tradeassist.tools.executor import FunctionExecutor
from tradeassist.tools.visual import project_batch

logger = logging.getLogger(__name__)

GENERIC_ERROR = {
    "ar": "حدث خطأ أثناء معالجة الرسالة",
    "en": "Something went wrong while processing your message",
}

QUOTA_MESSAGE = {
    "ar": "تم تجاوز الحد المسموح من الرسائل. حاول مرة أخرى لاحقاً",
    "en": "Too many messages. Please try again later",
}


class TurnState(str, Enum):
    """Lifecycle of one chat turn."""

    LOADED = "loaded"
    RETRIEVING = "retrieving"
    PROMPT_READY = "prompt_ready"
    GENERATING = "generating"
    TOOL_DISPATCH = "tool_dispatch"
    FOLLOW_UP = "follow_up"
    PERSISTING = "persisting"
    DONE = "done"
    ERRORED = "errored"


@dataclass
class ChatRequest:
    """A validated chat message from the storefront."""

    message: str
    session_id: str | None = None
    customer_id: str | None = None
    locale: str = "ar"
    cart_items: list[CartItem] = field(default_factory=list)


@dataclass
class ChatTurn:
    """State of one turn, shared between :meth:`begin` and :meth:`stream`."""

    request: ChatRequest
    conversation: Conversation
    session_id: str
    messages: list[Message]
    state: TurnState = TurnState.LOADED
    function_results: list[FunctionResult] = field(default_factory=list)
    assistant_text: str = ""
    error: str | None = None


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def to_message(record: MessageRecord) -> Message:
    """Convert a persisted record into a generation message."""
    return Message(
        role=record.role,
        content=record.content,
        function_calls=list(record.function_calls) or None,
        call_id=record.call_id,
        name=record.name,
    )


def default_policies(config: RateLimitConfig) -> list[RateLimitPolicy]:
    """Short- and long-window chat limits."""
    return [
        RateLimitPolicy(name="chat-minute", limit=config.per_minute, window_ms=60_000),
        RateLimitPolicy(name="chat-hour", limit=config.per_hour, window_ms=3_600_000),
    ]


class ChatOrchestrator:
    """Runs one chat turn end to end and streams frames for it.

    A turn has two phases. :meth:`begin` does everything that may still be
    reported as a plain HTTP error: rate limiting, loading the conversation
    and recording the user message. :meth:`stream` then yields frames; from
    that point on every failure is reported as a single error frame and the
    stream ends with exactly one of ``[DONE]`` or that error frame.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        store: ConversationStore,
        executor: FunctionExecutor,
        catalog: Catalog,
        retrieval: RetrievalService | None = None,
        limiter: RateLimiter | None = None,
        policies: list[RateLimitPolicy] | None = None,
        sanitizer: OutputSanitizer | None = None,
        assembler: PromptAssembler | None = None,
        product_index: SemanticIndex | None = None,
        chat_config: ChatConfig | None = None,
        retrieval_config: RetrievalConfig | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            backend: Streaming generation backend
            store: Conversation store
            executor: Function executor holding the shopping tools
            catalog: Product and order catalog used by tools
            retrieval: Retrieval service (None disables retrieval)
            limiter: Rate limiter (None disables rate limiting)
            policies: Rate-limit policies (defaults to 20/min and 100/h)
            sanitizer: Output sanitizer
            assembler: System instruction assembler
            product_index: Semantic product index passed to tools
            chat_config: Chat settings
            retrieval_config: Retrieval settings
        """
        self.backend = backend
        self.store = store
        self.executor = executor
        self.catalog = catalog
        self.retrieval = retrieval
        self.limiter = limiter
        self.policies = policies if policies is not None else default_policies(RateLimitConfig())
        self.sanitizer = sanitizer or OutputSanitizer()
        self.assembler = assembler or PromptAssembler()
        self.product_index = product_index
        self.chat_config = chat_config or ChatConfig()
        self.retrieval_config = retrieval_config or RetrievalConfig()

    async def begin(self, request: ChatRequest, caller: str) -> ChatTurn:
        """Prepare a turn before any frame is sent.

        Args:
            request: Validated chat request
            caller: Caller identity for rate limiting

        Returns:
            ChatTurn in the LOADED state

        Raises:
            QuotaExceeded: If a rate limit rejected the caller
            StorageError: If the conversation could not be loaded or written
        """
        if self.limiter is not None:
            rejected = self.limiter.check_all(caller, self.policies)
            if rejected is not None:
                policy, result = rejected
                raise QuotaExceeded(
                    QUOTA_MESSAGE.get(request.locale, QUOTA_MESSAGE["en"]),
                    retry_after_ms=result.retry_after_ms,
                    limiter=policy.name,
                )

        session_id = request.session_id or new_session_id()
        conversation = await self.store.get_or_create(
            session_id, customer_id=request.customer_id, locale=request.locale
        )
        history = await self.store.history(conversation.id, limit=self.chat_config.history_limit)
        await self.store.append(
            conversation.id,
            MessageRecord(conversation_id=conversation.id, role="user", content=request.message),
        )

        messages = [to_message(record) for record in history]
        messages.append(Message(role="user", content=request.message))

        logger.info(
            "Turn started for session %s (conversation %s, %d history messages)",
            session_id,
            conversation.id,
            len(history),
        )
        return ChatTurn(
            request=request,
            conversation=conversation,
            session_id=session_id,
            messages=messages,
        )

    async def _retrieve(self, turn: ChatTurn) -> RetrievalBundle:
        if self.retrieval is None or not self.retrieval_config.enabled:
            return RetrievalBundle.empty()
        cfg = self.retrieval_config
        return await bounded(
            self.retrieval.retrieve(
                turn.request.message,
                turn.request.locale,
                product_limit=cfg.product_limit,
                knowledge_limit=cfg.knowledge_limit,
                product_min_score=cfg.product_min_score,
                knowledge_min_score=cfg.knowledge_min_score,
            ),
            timeout=cfg.deadline_seconds,
            fallback=RetrievalBundle.empty(degraded=True),
            label=f"Retrieval for session {turn.session_id}",
        )

    def _call_context(self, turn: ChatTurn) -> CallContext:
        return CallContext(
            session_id=turn.session_id,
            catalog=self.catalog,
            locale=turn.request.locale,
            customer_id=turn.request.customer_id,
            cart_items=list(turn.request.cart_items),
            product_index=self.product_index,
            product_min_score=min(0.5, self.retrieval_config.product_min_score),
        )

    async def stream(self, turn: ChatTurn) -> AsyncIterator[Frame]:
        """Generate the reply for a prepared turn.

        Yields:
            Text, visual and error frames, then ``[DONE]`` on success
        """
        locale = turn.request.locale
        sanitizer = self.sanitizer.for_locale(locale)
        ctx = self._call_context(turn)
        messages = list(turn.messages)
        text_parts: list[str] = []
        tool_records: list[MessageRecord] = []
        conv_id = turn.conversation.id

        try:
            turn.state = TurnState.RETRIEVING
            bundle = await self._retrieve(turn)

            turn.state = TurnState.PROMPT_READY
            profile = CallerProfile(customer_id=turn.request.customer_id)
            system = self.assembler.build(
                self.chat_config.prompt_tier, profile, format_context(bundle, locale), locale
            )
            tools = self.executor.schemas() if self.chat_config.enable_functions else None

            max_rounds = self.chat_config.max_tool_rounds
            for round_no in range(max_rounds + 1):
                turn.state = TurnState.GENERATING
                # Last round runs without tools to force a final answer
                round_tools = tools if round_no < max_rounds else None
                round_text: list[str] = []
                calls: list[FunctionCall] = []

                async with aclosing(self.backend.stream(messages, round_tools, system)) as events:
                    async for event in events:
                        if event.text:
                            cleaned = sanitizer.filter_stream_chunk(event.text)
                            if cleaned:
                                round_text.append(cleaned)
                                text_parts.append(cleaned)
                                yield text_frame(cleaned)
                        if event.function_calls:
                            calls.extend(event.function_calls)

                if not calls or round_tools is None:
                    break

                turn.state = TurnState.TOOL_DISPATCH
                results = await self.executor.execute_batch(calls, ctx)
                turn.function_results.extend(results)

                visual = project_batch(results)
                if visual is not None:
                    yield visual_frame(visual)

                turn.state = TurnState.FOLLOW_UP
                messages.append(
                    Message(role="assistant", content="".join(round_text), function_calls=calls)
                )
                tool_records.append(
                    MessageRecord(conversation_id=conv_id, role="assistant", function_calls=calls)
                )
                for result in results:
                    content = result.to_text()
                    messages.append(
                        Message(
                            role="function",
                            content=content,
                            call_id=result.call_id,
                            name=result.name,
                        )
                    )
                    tool_records.append(
                        MessageRecord(
                            conversation_id=conv_id,
                            role="function",
                            content=content,
                            call_id=result.call_id,
                            name=result.name,
                        )
                    )

        except asyncio.CancelledError:
            logger.info("Turn cancelled for session %s", turn.session_id)
            raise
        except Exception as e:
            turn.state = TurnState.ERRORED
            turn.assistant_text = "".join(text_parts).strip()
            if isinstance(e, TradeAssistError):
                turn.error = e.message
                logger.error("Generation failed for session %s: %s", turn.session_id, e)
            else:
                turn.error = GENERIC_ERROR.get(locale, GENERIC_ERROR["en"])
                logger.exception("Unexpected error in turn for session %s", turn.session_id)

            if turn.assistant_text:
                await self._persist(
                    turn,
                    [
                        MessageRecord(
                            conversation_id=conv_id, role="assistant", content=turn.assistant_text
                        )
                    ],
                )
            yield error_frame(turn.error)
            return

        turn.state = TurnState.PERSISTING
        turn.assistant_text = "".join(text_parts).strip()
        tool_records.append(
            MessageRecord(conversation_id=conv_id, role="assistant", content=turn.assistant_text)
        )
        await self._persist(turn, tool_records)

        turn.state = TurnState.DONE
        logger.info(
            "Turn completed for session %s (%d function calls)",
            turn.session_id,
            len(turn.function_results),
        )
        yield DONE

    async def _persist(self, turn: ChatTurn, records: list[MessageRecord]) -> None:
        """Append the turn's records atomically; failures are logged, never raised."""
        try:
            await self.store.append_many(turn.conversation.id, records)
        except TradeAssistError as e:
            logger.error(
                "Could not persist %d message(s) for session %s: %s",
                len(records),
                turn.session_id,
                e,
            )
