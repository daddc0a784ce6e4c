"""Conversion of catalog products and knowledge entries into index documents."""

from collections.abc import Iterable

from tradeassist.commerce.models import KnowledgeEntry, Product
from tradeassist.rag.index import IndexDocument

LOCALES = ("ar", "en")


def product_documents(
    products: Iterable[Product], locales: tuple[str, ...] = LOCALES
) -> list[IndexDocument]:
    """One document per product and locale."""
    documents = []
    for product in products:
        for locale in locales:
            documents.append(
                IndexDocument(
                    id=f"{product.id}:{locale}",
                    text=product.index_text(locale),
                    metadata={
                        "item_id": product.id,
                        "locale": locale,
                        "title": product.display_name(locale),
                        "sku": product.sku,
                        "category": product.category or "",
                        "price": product.price,
                    },
                )
            )
    return documents


def knowledge_documents(entries: Iterable[KnowledgeEntry]) -> list[IndexDocument]:
    """One document per knowledge entry, in the entry's own locale."""
    return [
        IndexDocument(
            id=entry.id,
            text=entry.content,
            metadata={
                "item_id": entry.id,
                "locale": entry.locale,
                "title": entry.title,
                "type": entry.type,
            },
        )
        for entry in entries
    ]
