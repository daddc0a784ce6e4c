"""Projection of tool results into visual payloads for the storefront widgets."""

from typing import Any

from tradeassist.tools.base import FunctionResult

MAX_VISUAL_PRODUCTS = 6

# Tool name -> payload key holding its product list
PRODUCT_LIST_KEYS = {
    "search_products": "products",
    "get_recommendations": "recommendations",
    "get_similar_products": "similarProducts",
}


def _products(result: FunctionResult) -> list[dict[str, Any]] | None:
    items = result.payload.get(PRODUCT_LIST_KEYS[result.name])
    if not isinstance(items, list):
        return None
    return [item for item in items if isinstance(item, dict)]


def _comparison(result: FunctionResult) -> dict[str, Any] | None:
    comparison = result.payload.get("comparison")
    if not isinstance(comparison, dict) or not isinstance(comparison.get("products"), list):
        return None
    return {
        "products": comparison["products"],
        "aspects": list(comparison.get("aspects") or []),
    }


def _budget_solution(result: FunctionResult) -> dict[str, Any] | None:
    solution = result.payload.get("solution")
    if not isinstance(solution, dict) or not isinstance(solution.get("products"), list):
        return None

    items = []
    for product in solution["products"]:
        quantity = product.get("quantity", 1)
        price = product.get("price", 0)
        items.append(
            {
                "product": {
                    key: product.get(key) for key in ("id", "name", "sku", "price", "inStock")
                },
                "quantity": quantity,
                "subtotal": product.get("totalPrice", price * quantity),
            }
        )

    return {
        "budget": solution.get("budget"),
        "items": items,
        "totalCost": solution.get("totalCost"),
        "remainingBudget": solution.get("remainingBudget"),
        "priority": result.payload.get("priority"),
    }


def project(result: FunctionResult) -> dict[str, Any] | None:
    """Map one tool result to a visual payload.

    Args:
        result: Function result

    Returns:
        Visual payload, or None for failed and unrecognized results
    """
    if not result.success:
        return None

    if result.name in PRODUCT_LIST_KEYS:
        products = _products(result)
        if not products:
            return None
        return {"products": products[:MAX_VISUAL_PRODUCTS]}

    if result.name == "compare_products":
        comparison = _comparison(result)
        return {"comparison": comparison} if comparison else None

    if result.name == "calculate_budget_solution":
        solution = _budget_solution(result)
        return {"budgetSolution": solution} if solution else None

    return None


def project_batch(results: list[FunctionResult]) -> dict[str, Any] | None:
    """Merge the visual payloads of one tool batch into a single payload.

    Product lists are concatenated, de-duplicated by id and capped.
    """
    merged: dict[str, Any] = {}
    products: list[dict[str, Any]] = []
    seen: set[Any] = set()

    for result in results:
        visual = project(result)
        if visual is None:
            continue
        for product in visual.pop("products", []):
            key = product.get("id")
            if key is not None and key in seen:
                continue
            seen.add(key)
            products.append(product)
        merged.update(visual)

    if products:
        merged["products"] = products[:MAX_VISUAL_PRODUCTS]
    return merged or None
