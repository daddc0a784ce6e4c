"""Catalog tools: search, details, stock, comparison, recommendations and budgeting."""

import logging
from typing import Any, Literal

from tradeassist.commerce.models import Product
from tradeassist.tools.base import CallContext
from tradeassist.tools.registry import tool

logger = logging.getLogger(__name__)

MAX_BUDGET_ITEMS = 5
BUDGET_CANDIDATES = 20
DEFAULT_SCORE = 0.5


def product_card(
    product: Product, locale: str, score: float | None = None, description_chars: int = 200
) -> dict[str, Any]:
    """Compact product representation shared by tool payloads and visuals."""
    card: dict[str, Any] = {
        "id": product.id,
        "name": product.display_name(locale),
        "sku": product.sku,
        "price": product.price,
        "brand": product.brand,
        "category": product.category,
        "description": product.summary(locale, description_chars),
        "inStock": product.in_stock,
        "stock": product.stock,
    }
    if score is not None:
        card["similarity"] = round(score, 3)
    return card


async def find_products(
    ctx: CallContext,
    query: str,
    category: str | None = None,
    price_min: float | None = None,
    price_max: float | None = None,
    in_stock: bool = False,
    limit: int = 5,
) -> list[tuple[Product, float]]:
    """Semantic product search with a keyword fallback.

    Args:
        ctx: Call context holding the catalog and product index
        query: Free-text query
        category: Optional category filter
        price_min: Optional minimum price
        price_max: Optional maximum price
        in_stock: Only products with stock
        limit: Maximum number of results

    Returns:
        (product, score) pairs, best first
    """
    found: list[tuple[Product, float]] = []

    if ctx.product_index is not None:
        try:
            hits = await ctx.product_index.search(
                query, ctx.locale, limit * 3, ctx.product_min_score
            )
        except Exception as e:
            logger.warning("Semantic product search failed, using keyword search: %s", e)
            hits = []

        allowed = {p.id for p in ctx.catalog.list_products(category, price_min, price_max, in_stock)}
        seen: set[str] = set()
        for hit in hits:
            if hit.item_id in seen or hit.item_id not in allowed:
                continue
            product = ctx.catalog.get_product(hit.item_id)
            if product is not None:
                seen.add(hit.item_id)
                found.append((product, hit.score))

    if not found:
        found = ctx.catalog.keyword_search(
            query, category, price_min, price_max, in_stock, limit=limit
        )

    return found[:limit]


@tool(description="Search the catalog for products matching a description, name or material")
async def search_products(
    ctx: CallContext,
    query: str,
    category: str | None = None,
    price_min: float | None = None,
    price_max: float | None = None,
    in_stock: bool = False,
    limit: int = 5,
) -> dict[str, Any]:
    """Search products.

    Args:
        query: What the customer is looking for (e.g. "HDPE pipe grade")
        category: Restrict to a category name
        price_min: Minimum price in EGP
        price_max: Maximum price in EGP
        in_stock: Only return products currently in stock
        limit: Maximum number of products (default 5)
    """
    results = await find_products(ctx, query, category, price_min, price_max, in_stock, limit)
    products = [product_card(p, ctx.locale, score) for p, score in results]
    return {"success": True, "products": products, "count": len(products), "query": query}


@tool(description="Get full details of a product by ID or SKU")
async def get_product_details(ctx: CallContext, product_id: str) -> dict[str, Any]:
    """Product details.

    Args:
        product_id: Product ID or SKU
    """
    product = ctx.catalog.get_product(product_id)
    if product is None:
        return {"success": False, "error": f"Product {product_id} not found"}

    details = product_card(product, ctx.locale, description_chars=1000)
    details.update(
        {
            "compareAtPrice": product.compare_at_price,
            "company": product.company,
            "specifications": product.specifications,
            "tags": product.tags,
            "lowStock": product.low_stock,
        }
    )
    return {"success": True, "product": details}


@tool(description="Check current stock for one or more products")
async def check_stock(ctx: CallContext, product_ids: list[str]) -> dict[str, Any]:
    """Stock check.

    Args:
        product_ids: Product IDs or SKUs to check
    """
    products = ctx.catalog.get_products(product_ids)
    known = {p.id for p in products} | {p.sku for p in products}
    stock_info = [
        {
            "id": p.id,
            "name": p.display_name(ctx.locale),
            "sku": p.sku,
            "inStock": p.in_stock,
            "stock": p.stock,
            "lowStock": p.low_stock,
        }
        for p in products
    ]
    return {
        "success": True,
        "stockInfo": stock_info,
        "notFound": [pid for pid in product_ids if pid not in known],
    }


@tool(description="Compare two to four products side by side")
async def compare_products(
    ctx: CallContext,
    product_ids: list[str],
    aspects: list[str] | None = None,
) -> dict[str, Any]:
    """Product comparison.

    Args:
        product_ids: Two to four product IDs or SKUs
        aspects: Aspects to compare (default: price, specs, stock)
    """
    if not 2 <= len(product_ids) <= 4:
        return {"success": False, "error": "Comparison needs between 2 and 4 products"}

    products = ctx.catalog.get_products(product_ids)
    if len(products) < 2:
        return {"success": False, "error": "Could not find enough of the requested products"}

    rows = []
    for product in products:
        row = product_card(product, ctx.locale, description_chars=300)
        row["compareAtPrice"] = product.compare_at_price
        row["specifications"] = product.specifications
        rows.append(row)

    return {
        "success": True,
        "comparison": {"products": rows, "aspects": aspects or ["price", "specs", "stock"]},
    }


def _reason(locale: str, score: float) -> str:
    pct = round(score * 100)
    if locale == "ar":
        return f"مناسب لاحتياجاتك (تطابق {pct}%)"
    return f"Matches your needs ({pct}% match)"


@tool(description="Recommend products for a described need, optionally within a budget")
async def get_recommendations(
    ctx: CallContext,
    need: str,
    category: str | None = None,
    budget: float | None = None,
    limit: int = 3,
) -> dict[str, Any]:
    """Recommendations.

    Args:
        need: What the customer needs the products for
        category: Restrict to a category name
        budget: Maximum unit price in EGP
        limit: Maximum number of recommendations (default 3)
    """
    results = await find_products(ctx, need, category, None, budget, False, limit)
    recommendations = []
    for product, score in results:
        card = product_card(product, ctx.locale, description_chars=150)
        card["relevanceScore"] = round(score, 3)
        card["reason"] = _reason(ctx.locale, score)
        recommendations.append(card)
    return {"success": True, "recommendations": recommendations, "context": need}


@tool(description="Find products similar to a given product")
async def get_similar_products(ctx: CallContext, product_id: str, limit: int = 5) -> dict[str, Any]:
    """Similar products.

    Args:
        product_id: Product ID or SKU to find alternatives for
        limit: Maximum number of products (default 5)
    """
    target = ctx.catalog.get_product(product_id)
    if target is None:
        return {"success": False, "error": f"Product {product_id} not found"}

    scored: list[tuple[Product, float]] = []
    if ctx.product_index is not None:
        try:
            hits = await ctx.product_index.search(target.index_text(ctx.locale), ctx.locale, limit + 1)
        except Exception as e:
            logger.warning("Semantic similarity lookup failed for %s: %s", target.id, e)
            hits = []
        for hit in hits:
            product = ctx.catalog.get_product(hit.item_id)
            if product is not None and product.id != target.id:
                scored.append((product, hit.score))

    if not scored:
        peers = [
            p
            for p in ctx.catalog.list_products(category=target.category)
            if p.id != target.id
        ]
        ceiling = max([target.price, *(p.price for p in peers)], default=1.0) or 1.0
        scored = [(p, 1.0 - abs(p.price - target.price) / ceiling) for p in peers]
        scored.sort(key=lambda item: item[1], reverse=True)

    similar = [product_card(p, ctx.locale, score, 150) for p, score in scored[:limit]]
    return {"success": True, "similarProducts": similar, "count": len(similar)}


@tool(description="Build a purchase plan of catalog products that fits within a budget")
async def calculate_budget_solution(
    ctx: CallContext,
    budget: float,
    requirements: str = "",
    priority: Literal["quality", "balanced", "budget"] = "balanced",
) -> dict[str, Any]:
    """Budget plan.

    Args:
        budget: Total budget in EGP
        requirements: What the customer needs (materials, application)
        priority: quality favours pricier items, budget favours cheaper ones, balanced favours relevance
    """
    if budget <= 0:
        return {"success": False, "error": "Budget must be greater than zero"}

    if requirements.strip():
        candidates = await find_products(
            ctx, requirements, price_max=budget, limit=BUDGET_CANDIDATES
        )
    else:
        candidates = []
    if not candidates:
        candidates = [
            (p, DEFAULT_SCORE) for p in ctx.catalog.list_products(price_max=budget)
        ][:BUDGET_CANDIDATES]

    if not candidates:
        return {"success": False, "error": "No products found within this budget"}

    if priority == "quality":
        candidates.sort(key=lambda item: item[0].price, reverse=True)
    elif priority == "budget":
        candidates.sort(key=lambda item: item[0].price)
    else:
        candidates.sort(key=lambda item: item[1], reverse=True)

    chosen: list[dict[str, Any]] = []
    remaining = budget
    for product, _score in candidates:
        if product.price <= 0 or product.price > remaining:
            continue
        chosen.append(
            {
                "id": product.id,
                "name": product.display_name(ctx.locale),
                "sku": product.sku,
                "price": product.price,
                "inStock": product.in_stock,
                "quantity": 1,
                "totalPrice": product.price,
            }
        )
        remaining -= product.price
        if len(chosen) >= MAX_BUDGET_ITEMS:
            break

    return {
        "success": True,
        "solution": {
            "products": chosen,
            "totalCost": round(budget - remaining, 2),
            "remainingBudget": round(remaining, 2),
            "budget": budget,
        },
        "priority": priority,
    }
