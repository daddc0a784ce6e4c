"""Order lookup tools."""

from typing import Any

from tradeassist.commerce.models import Order
from tradeassist.tools.base import CallContext
from tradeassist.tools.registry import tool


def _order_summary(order: Order) -> dict[str, Any]:
    return {
        "orderNumber": order.order_number,
        "status": order.status,
        "createdAt": order.created_at.isoformat(),
        "total": order.total,
        "paymentStatus": order.payment_status,
        "itemsCount": len(order.items),
    }


@tool(description="Get the status of an order by its order number")
async def get_order_status(ctx: CallContext, order_number: str) -> dict[str, Any]:
    """Order status.

    Args:
        order_number: Order number printed on the confirmation (e.g. ORD-1042)
    """
    order = ctx.catalog.get_order(order_number)
    if order is None:
        return {"success": False, "error": f"Order {order_number} not found. Check the number."}

    # Signed-in customers may only see their own orders
    if ctx.customer_id and order.customer_id != ctx.customer_id:
        return {"success": False, "error": "This order does not belong to your account"}

    details = _order_summary(order)
    details.update(
        {
            "paymentMethod": order.payment_method,
            "trackingNumber": order.tracking_number,
            "shippingAddress": order.shipping_address,
        }
    )
    return {"success": True, "order": details}


@tool(description="List the signed-in customer's recent orders", requires_auth=True)
async def get_order_history(ctx: CallContext, limit: int = 5) -> dict[str, Any]:
    """Order history.

    Args:
        limit: Maximum number of orders (default 5)
    """
    if ctx.customer_id is None:
        return {"success": False, "error": "Sign in to view your order history"}
    orders = ctx.catalog.orders_for_customer(ctx.customer_id, limit)
    history = [_order_summary(order) for order in orders]
    return {"success": True, "orders": history, "count": len(history)}
