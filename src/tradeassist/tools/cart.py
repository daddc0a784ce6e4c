"""Cart tool backed by the cart items the storefront sends with each request."""

from typing import Any

from tradeassist.tools.base import CallContext
from tradeassist.tools.registry import tool


@tool(description="Show what is currently in the customer's shopping cart")
async def get_cart_items(ctx: CallContext) -> dict[str, Any]:
    """Cart contents with line totals."""
    if not ctx.cart_items:
        message = (
            "سلة التسوق فارغة حالياً."
            if ctx.locale == "ar"
            else "The shopping cart is currently empty."
        )
        return {
            "success": True,
            "isEmpty": True,
            "message": message,
            "items": [],
            "totalItems": 0,
            "totalPrice": 0,
        }

    items = []
    total_price = 0.0
    for item in ctx.cart_items:
        product = item.product
        price = product.price if product and product.price else 0.0
        line_total = price * item.quantity
        total_price += line_total

        name = None
        if product is not None:
            name = product.name_ar if ctx.locale == "ar" and product.name_ar else product.name
        items.append(
            {
                "productName": name or ("منتج" if ctx.locale == "ar" else "Product"),
                "sku": product.sku if product else None,
                "quantity": item.quantity,
                "price": price,
                "total": line_total,
            }
        )

    count = len(items)
    if ctx.locale == "ar":
        message = f"في السلة {count} {'منتج' if count == 1 else 'منتجات'} بإجمالي {total_price:g} جنيه"
    else:
        message = f"{count} {'item' if count == 1 else 'items'} in the cart, {total_price:g} EGP total"

    return {
        "success": True,
        "isEmpty": False,
        "message": message,
        "items": items,
        "totalItems": count,
        "totalPrice": total_price,
    }
