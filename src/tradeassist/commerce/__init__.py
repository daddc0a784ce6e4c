"""Catalog, order and cart data consumed by the shopping tools."""

from tradeassist.commerce.catalog import Catalog, CatalogError, InMemoryCatalog, load_catalog
from tradeassist.commerce.models import CartItem, KnowledgeEntry, Order, Product

__all__ = [
    "CartItem",
    "Catalog",
    "CatalogError",
    "InMemoryCatalog",
    "KnowledgeEntry",
    "Order",
    "Product",
    "load_catalog",
]
