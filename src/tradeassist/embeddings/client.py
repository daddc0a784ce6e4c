"""Embedding model interface shared by the product and knowledge indices."""

from typing import Protocol


class EmbeddingClient(Protocol):
    """Maps Arabic and English text into one vector space.

    Documents and queries go through separate calls because some
    retrieval models encode them with different prefixes.
    """

    @property
    def model_name(self) -> str: ...

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """One normalized vector per document, in input order."""
        ...

    async def embed_query(self, text: str) -> list[float]: ...
