"""Embedding generation for product and knowledge search."""

from tradeassist.embeddings.client import EmbeddingClient
from tradeassist.embeddings.sentence_transformer import SentenceTransformerEmbedding

__all__ = ["EmbeddingClient", "SentenceTransformerEmbedding"]
