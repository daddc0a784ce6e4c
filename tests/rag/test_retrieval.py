"""Tests for retrieval with deadlines and knowledge re-ranking."""

import asyncio
import time

import pytest

from tradeassist.rag.index import RetrievalHit
from tradeassist.rag.retrieval import RetrievalBundle, RetrievalService, bounded, rerank_knowledge


class FakeIndex:
    """Index returning canned hits, optionally slow or failing."""

    def __init__(self, hits=None, delay: float = 0.0, error: Exception | None = None):
        self.hits = hits or []
        self.delay = delay
        self.error = error
        self.queries = []

    async def search(self, query, locale, limit, min_score=0.0, where=None):
        self.queries.append((query, locale, limit, min_score))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [h for h in self.hits if h.score >= min_score][:limit]


def _hit(item_id, score, title="", snippet=""):
    return RetrievalHit(item_id=item_id, score=score, snippet=snippet, title=title)


@pytest.mark.asyncio
async def test_bounded_returns_result_in_time():
    async def work():
        return "ok"

    assert await bounded(work(), timeout=1.0, fallback="fallback") == "ok"


@pytest.mark.asyncio
async def test_bounded_falls_back_at_deadline():
    cancelled = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    start = time.monotonic()
    result = await bounded(slow(), timeout=0.05, fallback=RetrievalBundle.empty(degraded=True))

    assert result.degraded
    assert result.is_empty
    assert time.monotonic() - start < 1.0
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_retrieve_combines_sources():
    products = FakeIndex([_hit("p1", 0.9), _hit("p2", 0.8), _hit("p3", 0.5)])
    knowledge = FakeIndex([_hit("k1", 0.4, title="Returns")])
    service = RetrievalService(products, knowledge)

    bundle = await service.retrieve("returns", "en", product_limit=5, product_min_score=0.7)

    assert [h.item_id for h in bundle.products] == ["p1", "p2"]
    assert [h.item_id for h in bundle.knowledge] == ["k1"]
    assert not bundle.degraded


@pytest.mark.asyncio
async def test_retrieve_truncates_each_source():
    products = FakeIndex([_hit(f"p{i}", 0.9) for i in range(10)])
    knowledge = FakeIndex([_hit(f"k{i}", 0.9) for i in range(10)])
    service = RetrievalService(products, knowledge)

    bundle = await service.retrieve("q", "ar", product_limit=2, knowledge_limit=1)

    assert len(bundle.products) == 2
    assert len(bundle.knowledge) == 1
    # Knowledge over-fetches for re-ranking
    assert knowledge.queries[0][2] == 2


@pytest.mark.asyncio
async def test_one_failing_source_degrades_to_empty():
    products = FakeIndex(error=RuntimeError("vector store down"))
    knowledge = FakeIndex([_hit("k1", 0.9)])
    service = RetrievalService(products, knowledge)

    bundle = await service.retrieve("q", "en")

    assert bundle.products == []
    assert [h.item_id for h in bundle.knowledge] == ["k1"]


@pytest.mark.asyncio
async def test_missing_indices_return_empty():
    bundle = await RetrievalService().retrieve("q", "en")
    assert bundle.is_empty


@pytest.mark.asyncio
async def test_sources_run_concurrently():
    service = RetrievalService(
        FakeIndex([_hit("p", 0.9)], delay=0.2), FakeIndex([_hit("k", 0.9)], delay=0.2)
    )

    start = time.monotonic()
    await service.retrieve("q", "en")

    assert time.monotonic() - start < 0.35


def test_rerank_boosts_title_and_content_matches():
    hits = [
        _hit("a", 0.50, title="Payment methods", snippet="Cash on delivery and cards."),
        _hit("b", 0.45, title="Return policy", snippet="Returns accepted within 14 days."),
    ]

    reranked = rerank_knowledge("return policy", hits)

    assert reranked[0].item_id == "b"
    # "return" and "policy" in title (+0.30), "return" in content (+0.05)
    assert reranked[0].score == pytest.approx(0.80)
    assert reranked[1].score == pytest.approx(0.50)


def test_rerank_caps_at_one():
    hits = [_hit("a", 0.95, title="HDPE pipes guide", snippet="HDPE pipes guide")]
    assert rerank_knowledge("hdpe pipes guide", hits)[0].score == 1.0


def test_rerank_ignores_short_words():
    hits = [_hit("a", 0.5, title="of to in", snippet="")]
    assert rerank_knowledge("of to in", hits)[0].score == 0.5
