"""Vector collections backing product and knowledge search."""

from tradeassist.vector.store import VectorMatch, VectorStore

__all__ = ["VectorMatch", "VectorStore"]
