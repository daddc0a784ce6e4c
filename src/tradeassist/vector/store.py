"""Vector collection interface used by the semantic indices."""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class VectorMatch:
    """One nearest-neighbour result.

    ``similarity`` is ``1 - cosine distance``, so 1.0 is an exact match.
    """

    id: str
    document: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorStore(Protocol):
    """A single collection of embedded documents.

    Documents carry an ``item_id`` in their metadata; several documents
    (one per locale) may share one item.
    """

    def upsert(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None: ...

    def query(
        self,
        embedding: list[float],
        limit: int = 10,
        where: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Nearest documents to ``embedding``, most similar first."""
        ...

    def delete_items(self, item_ids: list[str]) -> int:
        """Remove every document belonging to the given items.

        Returns:
            Number of documents removed
        """
        ...

    def count(self) -> int: ...
