"""Concurrent product and knowledge retrieval with a bounded-time fallback."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from tradeassist.rag.index import RetrievalHit, SemanticIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")

TITLE_BOOST = 0.15
CONTENT_BOOST = 0.05
CONTENT_WINDOW = 500
MIN_BOOST_WORD = 3


@dataclass
class RetrievalBundle:
    """Ranked hits from both corpora for one request."""

    products: list[RetrievalHit] = field(default_factory=list)
    knowledge: list[RetrievalHit] = field(default_factory=list)
    degraded: bool = False

    @classmethod
    def empty(cls, degraded: bool = False) -> "RetrievalBundle":
        return cls(degraded=degraded)

    @property
    def is_empty(self) -> bool:
        return not self.products and not self.knowledge


async def bounded(awaitable: Awaitable[T], timeout: float, fallback: T, label: str = "call") -> T:
    """Await with a deadline, returning ``fallback`` instead of blocking past it.

    The awaitable is cancelled when the deadline elapses.

    Args:
        awaitable: Work to run
        timeout: Deadline in seconds
        fallback: Value returned on timeout
        label: Name used in the degradation log line

    Returns:
        The awaitable's result, or ``fallback`` on timeout
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        logger.warning("%s exceeded %.2fs deadline, continuing with fallback", label, timeout)
        return fallback


def rerank_knowledge(query: str, hits: list[RetrievalHit]) -> list[RetrievalHit]:
    """Boost knowledge hits whose title or opening text contains query words.

    Each query word of at least three characters adds 0.15 when found in the
    title and 0.05 when found in the first 500 characters of the content.
    Scores are capped at 1.0.
    """
    words = [w for w in query.lower().split() if len(w) >= MIN_BOOST_WORD]
    if not words:
        return hits

    reranked: list[RetrievalHit] = []
    for hit in hits:
        title = hit.title.lower()
        head = hit.snippet[:CONTENT_WINDOW].lower()
        boost = 0.0
        for word in words:
            if word in title:
                boost += TITLE_BOOST
            if word in head:
                boost += CONTENT_BOOST
        reranked.append(
            RetrievalHit(
                item_id=hit.item_id,
                score=min(1.0, hit.score + boost),
                snippet=hit.snippet,
                title=hit.title,
                metadata=hit.metadata,
            )
        )
    reranked.sort(key=lambda h: h.score, reverse=True)
    return reranked


class RetrievalService:
    """Runs product and knowledge lookups side by side.

    Each source degrades to an empty list on its own failure, so one broken
    index never fails the request. Either index may be None when that
    corpus is not configured.
    """

    def __init__(
        self,
        product_index: SemanticIndex | None = None,
        knowledge_index: SemanticIndex | None = None,
    ):
        self.product_index = product_index
        self.knowledge_index = knowledge_index

    async def _search_products(
        self, query: str, locale: str, limit: int, min_score: float
    ) -> list[RetrievalHit]:
        if self.product_index is None or limit <= 0:
            return []
        try:
            hits = await self.product_index.search(query, locale, limit, min_score)
        except Exception as e:
            logger.warning("Product retrieval failed: %s", e)
            return []
        return hits[:limit]

    async def _search_knowledge(
        self, query: str, locale: str, limit: int, min_score: float
    ) -> list[RetrievalHit]:
        if self.knowledge_index is None or limit <= 0:
            return []
        try:
            # Over-fetch so re-ranking can promote title matches
            hits = await self.knowledge_index.search(query, locale, limit * 2, min_score)
        except Exception as e:
            logger.warning("Knowledge retrieval failed: %s", e)
            return []
        return rerank_knowledge(query, hits)[:limit]

    async def retrieve(
        self,
        query: str,
        locale: str,
        product_limit: int = 5,
        knowledge_limit: int = 3,
        product_min_score: float = 0.7,
        knowledge_min_score: float = 0.3,
    ) -> RetrievalBundle:
        """Search both corpora concurrently.

        Args:
            query: Customer message
            locale: Locale of indexed documents to consider
            product_limit: Maximum product hits
            knowledge_limit: Maximum knowledge hits
            product_min_score: Minimum product similarity
            knowledge_min_score: Minimum knowledge similarity

        Returns:
            RetrievalBundle with each list truncated to its cap
        """
        products, knowledge = await asyncio.gather(
            self._search_products(query, locale, product_limit, product_min_score),
            self._search_knowledge(query, locale, knowledge_limit, knowledge_min_score),
        )
        return RetrievalBundle(products=products, knowledge=knowledge)
