"""
Money helpers: Decimal amounts in the store currency, two decimal places, ROUND_HALF_UP.
"""
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
CURRENCY_SYMBOL = "₹"

Money = Decimal


def to_money(value: Decimal | int | float | str) -> Money:
    """Convert to Decimal via str() so floats keep their printed value (1234.56 stays 1234.56)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal | int | float | str) -> Money:
    return to_money(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Decimal | int | float | str) -> str:
    """₹3,740.00"""
    return f"{CURRENCY_SYMBOL}{round2(value):,.2f}"
