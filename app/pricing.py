"""
Pricing engine: shipping, tax and grand total from subtotal and discount.
Pure functions; totals are computed once at order creation and frozen on the order.
"""
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel

from app.money import Money, round2, to_money

SHIPPING_FEE = Decimal("200")
FREE_SHIPPING_THRESHOLD = Decimal("5000")
TAX_RATE = Decimal("0.18")  # GST


class OrderTotals(BaseModel):
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money

    model_config = {"frozen": True}


def compute_shipping(subtotal) -> Money:
    """Flat fee below the threshold, free at or above it. Decided on the raw subtotal."""
    if to_money(subtotal) >= FREE_SHIPPING_THRESHOLD:
        return round2(0)
    return round2(SHIPPING_FEE)


def compute_tax(subtotal, discount) -> Money:
    """Tax on (subtotal - discount); the taxable base never goes below zero."""
    taxable = max(to_money(subtotal) - to_money(discount), Decimal("0"))
    return round2(taxable * TAX_RATE)


def compute_order_totals(subtotal, discount=0) -> OrderTotals:
    """
    Compose shipping and tax into a totals snapshot.
    subtotal and discount are normalised to cents first; shipping and tax are decided
    on those stored amounts, so the snapshot always agrees with itself.
    discount <= subtotal is checked upstream (coupon validation), not here.
    """
    subtotal = round2(subtotal)
    discount = round2(discount)
    shipping = compute_shipping(subtotal)
    tax = compute_tax(subtotal, discount)
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=subtotal - discount + tax + shipping,
    )


def subtotal_for(items: Iterable) -> Money:
    """Sum of line subtotals (price * quantity) for order items."""
    return round2(sum((item.subtotal for item in items), Decimal("0")))
