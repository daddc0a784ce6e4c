"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

import pytest

from tradeassist.chat.orchestrator import ChatOrchestrator
from tradeassist.commerce.catalog import InMemoryCatalog
from tradeassist.commerce.models import KnowledgeEntry, Order, OrderItem, Product
from tradeassist.config.schema import TradeAssistConfig
from tradeassist.llm.client import FunctionCall, GenerationEvent, Message
from tradeassist.memory.manager import ConversationStore
from tradeassist.ratelimit.limiter import RateLimiter
from tradeassist.tools.base import CallContext
from tradeassist.tools.executor import FunctionExecutor
from tradeassist.tools.registry import get_shopping_tools


class StubBackend:
    """Generation backend that replays scripted rounds.

    Each round is a list of events; one round is consumed per ``stream``
    call. The arguments of every call are recorded for assertions.
    """

    def __init__(self, rounds: list[list[GenerationEvent]] | None = None):
        self.rounds = list(rounds or [])
        self.requests: list[dict[str, Any]] = []
        self.closed = 0

    async def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        system_instruction: str,
    ) -> AsyncIterator[GenerationEvent]:
        self.requests.append(
            {"messages": list(messages), "tools": tools, "system": system_instruction}
        )
        events = self.rounds.pop(0) if self.rounds else [GenerationEvent(finish_reason="stop")]
        try:
            for event in events:
                if isinstance(event, Exception):
                    raise event
                yield event
        finally:
            self.closed += 1

    @staticmethod
    def text(*chunks: str) -> list[GenerationEvent]:
        """A round that streams text and stops."""
        return [GenerationEvent(text=c) for c in chunks] + [GenerationEvent(finish_reason="stop")]

    @staticmethod
    def calls(*function_calls: FunctionCall) -> list[GenerationEvent]:
        """A round that requests function calls."""
        return [GenerationEvent(function_calls=list(function_calls), finish_reason="tool_calls")]


@pytest.fixture
def products() -> list[Product]:
    return [
        Product(
            id="p-hdpe-25",
            sku="HDPE-25",
            name="HDPE Pipe Grade 25kg",
            name_ar="بولي إيثيلين عالي الكثافة للأنابيب 25 كجم",
            brand="SABIC",
            category="Polymers",
            price=950,
            stock=40,
            description="High density polyethylene granules for pipe extrusion.",
            tags=["HDPE", "Pipes"],
        ),
        Product(
            id="p-hdpe-film",
            sku="HDPE-F25",
            name="HDPE Film Grade 25kg",
            brand="Borouge",
            category="Polymers",
            price=900,
            stock=5,
            description="High density polyethylene for blown film.",
            tags=["HDPE", "Film"],
        ),
        Product(
            id="p-ldpe-25",
            sku="LDPE-25",
            name="LDPE Film Grade 25kg",
            brand="SABIC",
            category="Polymers",
            price=1100,
            stock=0,
            tags=["LDPE", "Film", "Packaging"],
        ),
        Product(
            id="p-pp-25",
            sku="PP-25",
            name="Polypropylene Homopolymer 25kg",
            category="Polymers",
            price=1000,
            stock=12,
            tags=["PP"],
        ),
        Product(
            id="p-mb-black",
            sku="MB-BLK",
            name="Black Masterbatch 25kg",
            category="Masterbatch",
            price=1500,
            stock=8,
            tags=["Masterbatch"],
        ),
    ]


@pytest.fixture
def catalog(products) -> InMemoryCatalog:
    orders = [
        Order(
            order_number="ORD-1001",
            customer_id="cust-1",
            status="shipped",
            created_at=datetime(2026, 3, 1, tzinfo=UTC),
            total=1900,
            payment_method="cod",
            payment_status="pending",
            tracking_number="TRK-1",
            items=[OrderItem(sku="HDPE-25", quantity=2, price=950)],
        ),
        Order(
            order_number="ORD-1002",
            customer_id="cust-1",
            status="pending",
            created_at=datetime(2026, 4, 1, tzinfo=UTC),
            total=1000,
            items=[OrderItem(sku="PP-25", quantity=1, price=1000)],
        ),
        Order(
            order_number="ORD-2001",
            customer_id="cust-2",
            status="delivered",
            created_at=datetime(2026, 2, 1, tzinfo=UTC),
            total=1100,
        ),
    ]
    knowledge = [
        KnowledgeEntry(
            id="kb-returns",
            title="Return policy",
            content="Unopened bags can be returned within 14 days.",
            locale="en",
            type="policy",
        )
    ]
    return InMemoryCatalog(products, orders, knowledge)


@pytest.fixture
def ctx(catalog) -> CallContext:
    return CallContext(session_id="s-test", catalog=catalog, locale="en")


@pytest.fixture
def store(tmp_path) -> ConversationStore:
    return ConversationStore(tmp_path / "conversations.db")


@pytest.fixture
def default_config() -> TradeAssistConfig:
    """Provide a default configuration for tests."""
    return TradeAssistConfig()


@pytest.fixture
def test_config(tmp_path) -> TradeAssistConfig:
    """Configuration with storage in a temporary directory and retrieval off."""
    config = TradeAssistConfig()
    config.memory.storage_path = str(tmp_path / "conversations.db")
    config.retrieval.enabled = False
    return config


@pytest.fixture
def stub() -> type[StubBackend]:
    """The scripted backend class, for building per-test scripts."""
    return StubBackend


@pytest.fixture
def make_orchestrator(store, catalog, test_config):
    """Factory building an orchestrator around a stub backend."""

    def _make(backend: StubBackend, **kwargs: Any) -> ChatOrchestrator:
        kwargs.setdefault("limiter", RateLimiter())
        kwargs.setdefault("chat_config", test_config.chat)
        kwargs.setdefault("retrieval_config", test_config.retrieval)
        return ChatOrchestrator(
            backend=backend,
            store=store,
            executor=FunctionExecutor(get_shopping_tools()),
            catalog=catalog,
            **kwargs,
        )

    return _make
