"""Semantic index over one corpus (products or knowledge base)."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from tradeassist.embeddings.client import EmbeddingClient
from tradeassist.vector.store import VectorStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievalHit:
    """One ranked retrieval result."""

    item_id: str
    score: float
    snippet: str
    title: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexDocument:
    """A document to embed into an index."""

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


class SemanticIndex:
    """Embedding search over a single vector collection.

    Similarity is reported as ``1 - cosine distance``. Documents carry an
    ``item_id`` so one catalog item can be indexed once per locale.
    """

    def __init__(self, embedding_client: EmbeddingClient, vector_store: VectorStore):
        """Initialize the index.

        Args:
            embedding_client: Client used for both documents and queries
            vector_store: Collection holding the documents
        """
        self.embedding_client = embedding_client
        self.vector_store = vector_store

    async def add(self, documents: list[IndexDocument]) -> int:
        """Embed and upsert documents.

        Documents previously indexed for the same items are removed first.

        Args:
            documents: Documents to index

        Returns:
            Number of documents written
        """
        if not documents:
            return 0
        item_ids = list(
            dict.fromkeys(str(doc.metadata.get("item_id", doc.id)) for doc in documents)
        )
        removed = await asyncio.to_thread(self.vector_store.delete_items, item_ids)
        embeddings = await self.embedding_client.embed_documents([doc.text for doc in documents])
        await asyncio.to_thread(
            self.vector_store.upsert,
            [doc.id for doc in documents],
            embeddings,
            [doc.text for doc in documents],
            [doc.metadata for doc in documents],
        )
        logger.debug("Indexed %d documents (%d replaced)", len(documents), removed)
        return len(documents)

    async def search(
        self,
        query: str,
        locale: str | None = None,
        limit: int = 5,
        min_score: float = 0.0,
        where: dict[str, Any] | None = None,
    ) -> list[RetrievalHit]:
        """Find documents similar to a query.

        Args:
            query: Free-text query
            locale: Restrict to documents indexed for this locale
            limit: Maximum number of hits
            min_score: Minimum similarity (0.0-1.0)
            where: Extra metadata filters

        Returns:
            Hits ordered by descending similarity
        """
        if limit <= 0 or not query.strip():
            return []

        filters: list[dict[str, Any]] = []
        if locale:
            filters.append({"locale": locale})
        if where:
            filters.extend({key: value} for key, value in where.items())
        clause: dict[str, Any] | None = None
        if len(filters) == 1:
            clause = filters[0]
        elif filters:
            clause = {"$and": filters}

        query_embedding = await self.embedding_client.embed_query(query)
        matches = await asyncio.to_thread(
            self.vector_store.query, query_embedding, limit, clause
        )

        hits = [
            RetrievalHit(
                item_id=str(match.metadata.get("item_id", match.id)),
                score=match.similarity,
                snippet=match.document,
                title=str(match.metadata.get("title", "")),
                metadata=match.metadata,
            )
            for match in matches
            if match.similarity >= min_score
        ]

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]
