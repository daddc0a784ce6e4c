"""Factory functions wiring the chat pipeline from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tradeassist.chat.orchestrator import ChatOrchestrator, default_policies
from tradeassist.chat.sanitizer import OutputSanitizer
from tradeassist.commerce.catalog import load_catalog
from tradeassist.embeddings.sentence_transformer import SentenceTransformerEmbedding
from tradeassist.llm.factory import create_backend
from tradeassist.memory.manager import ConversationStore
from tradeassist.rag.index import SemanticIndex
from tradeassist.rag.retrieval import RetrievalService
from tradeassist.ratelimit.limiter import RateLimiter
from tradeassist.tools.executor import FunctionExecutor
from tradeassist.tools.registry import get_shopping_tools
from tradeassist.vector.chromadb import ChromaDBVectorStore

if TYPE_CHECKING:
    from tradeassist.commerce.catalog import Catalog
    from tradeassist.config.schema import TradeAssistConfig
    from tradeassist.llm.client import GenerationBackend

logger = logging.getLogger(__name__)


def create_indices(config: TradeAssistConfig) -> tuple[SemanticIndex, SemanticIndex]:
    """Create the product and knowledge indices sharing one embedding model.

    Returns:
        Tuple of (product index, knowledge index)
    """
    vs = config.vector_store
    embedding = SentenceTransformerEmbedding(
        model_name=vs.embedding_model,
        query_prefix=vs.query_prefix,
        document_prefix=vs.document_prefix,
    )
    products = SemanticIndex(
        embedding, ChromaDBVectorStore(vs.product_collection, vs.persist_directory)
    )
    knowledge = SemanticIndex(
        embedding, ChromaDBVectorStore(vs.knowledge_collection, vs.persist_directory)
    )
    return products, knowledge


def create_orchestrator(
    config: TradeAssistConfig,
    backend: GenerationBackend | None = None,
    store: ConversationStore | None = None,
    catalog: Catalog | None = None,
) -> ChatOrchestrator:
    """Build a ChatOrchestrator from configuration.

    Args:
        config: TradeAssist configuration
        backend: Generation backend (created from ``config.inference`` if None)
        store: Conversation store (created from ``config.memory`` if None)
        catalog: Catalog (loaded from ``config.catalog.path`` if None)

    Returns:
        Ready-to-use orchestrator
    """
    product_index = knowledge_index = None
    retrieval = None
    if config.retrieval.enabled:
        product_index, knowledge_index = create_indices(config)
        retrieval = RetrievalService(product_index, knowledge_index)
    else:
        logger.info("Retrieval disabled, prompts carry no catalog context")

    return ChatOrchestrator(
        backend=backend or create_backend(config),
        store=store or ConversationStore(config.memory.storage_path),
        executor=FunctionExecutor(get_shopping_tools()),
        catalog=catalog if catalog is not None else load_catalog(config.catalog.path),
        retrieval=retrieval,
        limiter=RateLimiter(sweep_interval=config.rate_limit.sweep_interval),
        policies=default_policies(config.rate_limit),
        product_index=product_index,
        chat_config=config.chat,
        retrieval_config=config.retrieval,
        sanitizer=OutputSanitizer(discard_ratio=config.chat.sanitizer_discard_ratio),
    )
