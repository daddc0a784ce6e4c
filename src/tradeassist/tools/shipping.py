"""Shipping rate and delivery time tools for Egyptian governorates."""

from typing import Any

from tradeassist.tools.base import CallContext
from tradeassist.tools.registry import tool

FREE_SHIPPING_THRESHOLD = 5000
EXPRESS_MULTIPLIER = 1.5
DEFAULT_GOVERNORATE = "القاهرة"

# Standard delivery cost in EGP
SHIPPING_RATES: dict[str, int] = {
    "القاهرة": 50,
    "الجيزة": 50,
    "الإسكندرية": 70,
    "القليوبية": 60,
    "الشرقية": 70,
    "الدقهلية": 80,
    "الغربية": 80,
    "المنوفية": 70,
    "البحيرة": 80,
    "كفر الشيخ": 90,
    "دمياط": 90,
    "بورسعيد": 90,
    "الإسماعيلية": 90,
    "السويس": 90,
    "شمال سيناء": 120,
    "جنوب سيناء": 120,
    "المنيا": 100,
    "بني سويف": 90,
    "الفيوم": 80,
    "أسيوط": 110,
    "سوهاج": 120,
    "قنا": 130,
    "الأقصر": 130,
    "أسوان": 140,
    "البحر الأحمر": 150,
    "الوادي الجديد": 160,
    "مطروح": 150,
}

ENGLISH_NAMES: dict[str, str] = {
    "cairo": "القاهرة",
    "giza": "الجيزة",
    "alexandria": "الإسكندرية",
    "qalyubia": "القليوبية",
    "sharqia": "الشرقية",
    "dakahlia": "الدقهلية",
    "gharbia": "الغربية",
    "monufia": "المنوفية",
    "beheira": "البحيرة",
    "kafr el sheikh": "كفر الشيخ",
    "damietta": "دمياط",
    "port said": "بورسعيد",
    "ismailia": "الإسماعيلية",
    "suez": "السويس",
    "north sinai": "شمال سيناء",
    "south sinai": "جنوب سيناء",
    "minya": "المنيا",
    "beni suef": "بني سويف",
    "faiyum": "الفيوم",
    "asyut": "أسيوط",
    "sohag": "سوهاج",
    "qena": "قنا",
    "luxor": "الأقصر",
    "aswan": "أسوان",
    "red sea": "البحر الأحمر",
    "new valley": "الوادي الجديد",
    "matrouh": "مطروح",
}

# (min days, max days)
DELIVERY_DAYS: dict[str, tuple[int, int]] = {
    "القاهرة": (1, 2),
    "الجيزة": (1, 2),
    "الإسكندرية": (2, 3),
    "القليوبية": (2, 3),
}
DEFAULT_DELIVERY_DAYS = (3, 5)
EXPRESS_GOVERNORATES = {"القاهرة", "الجيزة", "الإسكندرية"}


def resolve_governorate(name: str) -> tuple[str, bool]:
    """Normalize an Arabic or English governorate name.

    Returns:
        Tuple of (Arabic governorate name, whether it is a known governorate).
        Unknown names resolve to the default governorate's rates.
    """
    cleaned = " ".join(name.split())
    if cleaned in SHIPPING_RATES:
        return cleaned, True
    arabic = ENGLISH_NAMES.get(cleaned.lower())
    if arabic:
        return arabic, True
    return DEFAULT_GOVERNORATE, False


def _delivery_time(days: tuple[int, int], locale: str) -> str:
    low, high = days
    if locale == "ar":
        return f"{low}-{high} {'يوم' if high <= 2 else 'أيام'}"
    return f"{low}-{high} days"


@tool(description="Get shipping cost, delivery time and shipping methods for a governorate")
async def get_shipping_info(ctx: CallContext, governorate: str) -> dict[str, Any]:
    """Shipping info.

    Args:
        governorate: Egyptian governorate name in Arabic or English
    """
    resolved, known = resolve_governorate(governorate)
    cost = SHIPPING_RATES[resolved]
    delivery = _delivery_time(DELIVERY_DAYS.get(resolved, DEFAULT_DELIVERY_DAYS), ctx.locale)

    return {
        "success": True,
        "shippingInfo": {
            "governorate": resolved,
            "knownGovernorate": known,
            "shippingCost": cost,
            "deliveryTime": delivery,
            "freeShippingThreshold": FREE_SHIPPING_THRESHOLD,
            "availableShippingMethods": [
                {"name": "standard", "cost": cost, "time": delivery},
                {
                    "name": "express",
                    "cost": cost * EXPRESS_MULTIPLIER,
                    "time": _delivery_time((1, 2), ctx.locale),
                    "available": resolved in EXPRESS_GOVERNORATES,
                },
            ],
        },
    }


@tool(description="Calculate the shipping cost and order total for a governorate and order value")
async def calculate_shipping(ctx: CallContext, governorate: str, order_value: float) -> dict[str, Any]:
    """Shipping calculation.

    Args:
        governorate: Egyptian governorate name in Arabic or English
        order_value: Order subtotal in EGP
    """
    if order_value < 0:
        return {"success": False, "error": "Order value cannot be negative"}

    resolved, known = resolve_governorate(governorate)
    free = order_value >= FREE_SHIPPING_THRESHOLD
    cost = 0 if free else SHIPPING_RATES[resolved]

    return {
        "success": True,
        "calculation": {
            "governorate": resolved,
            "knownGovernorate": known,
            "orderValue": order_value,
            "shippingCost": cost,
            "isFreeShipping": free,
            "freeShippingThreshold": FREE_SHIPPING_THRESHOLD,
            "amountToFreeShipping": 0 if free else FREE_SHIPPING_THRESHOLD - order_value,
            "total": order_value + cost,
            "deliveryTime": _delivery_time(
                DELIVERY_DAYS.get(resolved, DEFAULT_DELIVERY_DAYS), ctx.locale
            ),
        },
    }
