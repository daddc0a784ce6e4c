"""Sentence-transformers embedding client."""

import asyncio
import logging
import threading
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"


class SentenceTransformerEmbedding:
    """Local multilingual embeddings via sentence-transformers.

    The model is loaded on first use and encoding runs in a worker thread.
    Models such as ``intfloat/multilingual-e5-*`` expect ``"query: "`` and
    ``"passage: "`` prefixes; pass them as ``query_prefix`` and
    ``document_prefix``.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: str | None = None,
        cache_dir: str | None = None,
        query_prefix: str = "",
        document_prefix: str = "",
    ):
        """Initialize the client.

        Args:
            model_name: HuggingFace model identifier
            device: Device to run on ("cuda", "mps", "cpu", or None for auto)
            cache_dir: Directory to cache models (None uses default)
            query_prefix: Text prepended to search queries
            document_prefix: Text prepended to indexed documents
        """
        self._model_name = model_name
        self._device = device
        self._cache_dir = cache_dir
        self.query_prefix = query_prefix
        self.document_prefix = document_prefix
        self._model: Any = None
        self._load_lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    def _load_model(self) -> Any:
        with self._load_lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info("Loading embedding model %s", self._model_name)
                self._model = SentenceTransformer(
                    self._model_name,
                    device=self._device,
                    cache_folder=self._cache_dir,
                )
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors = self._load_model().encode(texts, normalize_embeddings=True)
        return np.asarray(vectors, dtype=float).tolist()  # type: ignore[no-any-return]

    async def _embed(self, texts: list[str], prefix: str) -> list[list[float]]:
        if not texts:
            return []
        if prefix:
            texts = [prefix + text for text in texts]
        return await asyncio.to_thread(self._encode, texts)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed catalog or knowledge documents for indexing.

        Args:
            texts: Document texts

        Returns:
            One vector per text
        """
        return await self._embed(texts, self.document_prefix)

    async def embed_query(self, text: str) -> list[float]:
        """Embed a customer query."""
        (vector,) = await self._embed([text], self.query_prefix)
        return vector
