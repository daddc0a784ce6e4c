"""ChromaDB-backed vector collections."""

import logging
from pathlib import Path
from typing import Any

import chromadb

from tradeassist.vector.store import VectorMatch

logger = logging.getLogger(__name__)


class ChromaDBVectorStore:
    """One ChromaDB collection in cosine space.

    The product catalog and the knowledge base each get their own
    collection, usually sharing one persistent client directory.
    """

    def __init__(
        self,
        collection_name: str,
        persist_directory: str | Path | None = None,
    ):
        """Open or create the collection.

        Args:
            collection_name: Name of the ChromaDB collection
            persist_directory: Directory for persistent storage (None = in-memory)
        """
        self.collection_name = collection_name

        if persist_directory is None:
            self.client = chromadb.EphemeralClient()
        else:
            path = Path(persist_directory).expanduser().resolve()
            path.mkdir(parents=True, exist_ok=True)
            self.client = chromadb.PersistentClient(path=str(path))

        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def upsert(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        """Insert or replace documents. Metadata values must be scalars."""
        if not ids:
            return
        self.collection.upsert(
            ids=ids,
            embeddings=embeddings,  # type: ignore[arg-type]
            documents=documents,
            metadatas=metadatas,  # type: ignore[arg-type]
        )
        logger.debug("Upserted %d documents into %s", len(ids), self.collection_name)

    def query(
        self,
        embedding: list[float],
        limit: int = 10,
        where: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Nearest documents to ``embedding``.

        Args:
            embedding: Query vector
            limit: Maximum number of matches
            where: ChromaDB metadata filter

        Returns:
            Matches ordered by descending similarity
        """
        total = self.collection.count()
        if total == 0 or limit <= 0:
            return []

        results = self.collection.query(
            query_embeddings=[embedding],  # type: ignore[arg-type]
            n_results=min(limit, total),
            where=where,
        )

        # One result row per query embedding
        ids = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        matches = [
            VectorMatch(
                id=doc_id,
                document=document or "",
                similarity=1.0 - float(distance),
                metadata=dict(metadata or {}),
            )
            for doc_id, document, metadata, distance in zip(
                ids, documents, metadatas, distances, strict=False
            )
        ]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches

    def delete_items(self, item_ids: list[str]) -> int:
        """Remove every document whose ``item_id`` is in ``item_ids``."""
        if not item_ids:
            return 0
        where: dict[str, Any] = {"item_id": {"$in": list(item_ids)}}
        found = self.collection.get(where=where)  # type: ignore[arg-type]
        stale = found.get("ids") or []
        if stale:
            self.collection.delete(ids=stale)
        return len(stale)

    def count(self) -> int:
        result: int = self.collection.count()
        return result
