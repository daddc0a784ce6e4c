"""Product and order catalog used by the shopping tools."""

import logging
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import ValidationError

from tradeassist.commerce.keywords import expand_query
from tradeassist.commerce.models import KnowledgeEntry, Order, Product

logger = logging.getLogger(__name__)

KEYWORD_MATCH_SCORE = 0.6


class CatalogError(Exception):
    """Catalog file could not be loaded."""


class Catalog(Protocol):
    """Read access to products and orders."""

    def get_product(self, product_id: str) -> Product | None: ...

    def get_products(self, product_ids: list[str]) -> list[Product]: ...

    def list_products(
        self,
        category: str | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        in_stock: bool = False,
    ) -> list[Product]: ...

    def keyword_search(
        self,
        query: str,
        category: str | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        in_stock: bool = False,
        limit: int = 10,
    ) -> list[tuple[Product, float]]: ...

    def get_order(self, order_number: str) -> Order | None: ...

    def orders_for_customer(self, customer_id: str, limit: int = 5) -> list[Order]: ...


class InMemoryCatalog:
    """Catalog held in memory, loaded from YAML or built in tests."""

    def __init__(
        self,
        products: list[Product] | None = None,
        orders: list[Order] | None = None,
        knowledge: list[KnowledgeEntry] | None = None,
    ) -> None:
        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._by_sku: dict[str, Product] = {p.sku.lower(): p for p in products or []}
        self._orders: dict[str, Order] = {o.order_number: o for o in orders or []}
        self.knowledge: list[KnowledgeEntry] = list(knowledge or [])

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    def get_product(self, product_id: str) -> Product | None:
        """Find a product by ID, falling back to SKU."""
        product = self._products.get(product_id)
        if product is None:
            product = self._by_sku.get(product_id.lower())
        return product

    def get_products(self, product_ids: list[str]) -> list[Product]:
        """Resolve IDs or SKUs in request order, skipping unknown ones."""
        found: list[Product] = []
        for product_id in product_ids:
            product = self.get_product(product_id)
            if product is not None and product not in found:
                found.append(product)
        return found

    def list_products(
        self,
        category: str | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        in_stock: bool = False,
    ) -> list[Product]:
        """Filter products by category, price range and availability."""
        results = []
        for product in self._products.values():
            if category and (
                not product.category or category.lower() not in product.category.lower()
            ):
                continue
            if price_min is not None and product.price < price_min:
                continue
            if price_max is not None and product.price > price_max:
                continue
            if in_stock and not product.in_stock:
                continue
            results.append(product)
        return results

    def keyword_search(
        self,
        query: str,
        category: str | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        in_stock: bool = False,
        limit: int = 10,
    ) -> list[tuple[Product, float]]:
        """Match expanded query terms against names, brand, SKU and tags.

        Args:
            query: Customer query
            category: Optional category filter
            price_min: Optional minimum price
            price_max: Optional maximum price
            in_stock: Only return products with stock
            limit: Maximum number of results

        Returns:
            (product, score) pairs, best match first
        """
        terms = [term.lower() for term in expand_query(query) if term.strip()]
        scored: list[tuple[Product, int]] = []
        for product in self.list_products(category, price_min, price_max, in_stock):
            haystack = " ".join(
                value.lower()
                for value in (
                    product.name,
                    product.name_ar or "",
                    product.brand or "",
                    product.sku,
                    product.category or "",
                    " ".join(product.tags),
                )
            )
            hits = sum(1 for term in terms if term in haystack)
            if hits:
                scored.append((product, hits))

        scored.sort(key=lambda item: (-item[1], item[0].price))
        return [(product, KEYWORD_MATCH_SCORE) for product, _ in scored[:limit]]

    def get_order(self, order_number: str) -> Order | None:
        return self._orders.get(order_number.strip())

    def orders_for_customer(self, customer_id: str, limit: int = 5) -> list[Order]:
        """Customer's orders, newest first."""
        orders = [o for o in self._orders.values() if o.customer_id == customer_id]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[:limit]


def load_catalog(path: str | Path | None) -> InMemoryCatalog:
    """Load products, orders and knowledge entries from a YAML file.

    The file holds top-level ``products``, ``orders`` and ``knowledge``
    lists. A missing path yields an empty catalog.

    Raises:
        CatalogError: If the file is unreadable or malformed
    """
    if path is None:
        return InMemoryCatalog()

    path = Path(path).expanduser()
    if not path.exists():
        logger.warning("Catalog file %s not found, starting with an empty catalog", path)
        return InMemoryCatalog()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e

    try:
        products = [Product(**item) for item in data.get("products", [])]
        orders = [Order(**item) for item in data.get("orders", [])]
        knowledge = [KnowledgeEntry(**item) for item in data.get("knowledge", [])]
    except (ValidationError, TypeError, AttributeError) as e:
        raise CatalogError(f"Invalid catalog {path}: {e}") from e

    logger.info(
        "Loaded catalog %s: %d products, %d orders, %d knowledge entries",
        path,
        len(products),
        len(orders),
        len(knowledge),
    )
    return InMemoryCatalog(products, orders, knowledge)
