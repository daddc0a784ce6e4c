"""Pydantic models for catalog, order and cart data."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """A sellable catalog product."""

    id: str
    sku: str
    name: str
    name_ar: str | None = None
    brand: str | None = None
    category: str | None = None
    company: str | None = None
    price: float = Field(ge=0)
    compare_at_price: float | None = None
    stock: int = 0
    low_stock_threshold: int = 10
    description: str | None = None
    description_ar: str | None = None
    specifications: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def low_stock(self) -> bool:
        return 0 < self.stock <= self.low_stock_threshold

    def display_name(self, locale: str = "ar") -> str:
        if locale == "ar" and self.name_ar:
            return self.name_ar
        return self.name

    def summary(self, locale: str = "ar", length: int = 200) -> str | None:
        """Localized description truncated to ``length`` characters."""
        text = self.description_ar if locale == "ar" and self.description_ar else self.description
        if not text:
            return None
        return text[:length]

    def index_text(self, locale: str) -> str:
        """Text embedded into the product vector index."""
        parts = [self.display_name(locale), self.name, self.sku]
        for value in (self.brand, self.category, self.summary(locale, 500)):
            if value:
                parts.append(value)
        parts.extend(self.tags)
        parts.extend(f"{key}: {value}" for key, value in self.specifications.items())
        return "\n".join(dict.fromkeys(parts))


class OrderItem(BaseModel):
    sku: str
    quantity: int = 1
    price: float = 0.0


class Order(BaseModel):
    """A customer order as exposed to the assistant."""

    order_number: str
    customer_id: str | None = None
    status: str = "pending"
    created_at: datetime
    total: float
    payment_method: str | None = None
    payment_status: str | None = None
    tracking_number: str | None = None
    shipping_address: dict[str, Any] = Field(default_factory=dict)
    items: list[OrderItem] = Field(default_factory=list)


class CartProduct(BaseModel):
    """Product snapshot sent by the storefront with cart items."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str | None = None
    name_ar: str | None = Field(default=None, alias="nameAr")
    sku: str | None = None
    price: float | None = None


class CartItem(BaseModel):
    """One line of the browser-side cart."""

    product: CartProduct | None = None
    quantity: int = Field(default=1, ge=1)


class KnowledgeEntry(BaseModel):
    """A knowledge-base article (policy, FAQ, guide)."""

    id: str
    title: str
    content: str
    locale: str = "ar"
    type: str = "faq"
