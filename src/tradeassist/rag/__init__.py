"""Retrieval-augmented context for the chat pipeline.

- :class:`SemanticIndex` - embedding search over one ChromaDB collection
- :class:`RetrievalService` - concurrent product + knowledge lookups
- :func:`bounded` - deadline wrapper with a fallback value
- :class:`PromptAssembler` - system instruction builder
"""

from tradeassist.rag.index import IndexDocument, RetrievalHit, SemanticIndex
from tradeassist.rag.prompt import CallerProfile, PromptAssembler, PromptTier, format_context
from tradeassist.rag.retrieval import RetrievalBundle, RetrievalService, bounded

__all__ = [
    "CallerProfile",
    "IndexDocument",
    "PromptAssembler",
    "PromptTier",
    "RetrievalBundle",
    "RetrievalHit",
    "RetrievalService",
    "SemanticIndex",
    "bounded",
    "format_context",
]
