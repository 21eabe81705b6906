"""
Money helpers shared by the financial domain.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Largest value a Numeric(14, 2) money column holds
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value: Any) -> Decimal:
    """Normalize DB aggregates (None, float, int, Decimal) to a 2dp Decimal."""
    if value is None:
        return ZERO.quantize(CENT)
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_ugx(value: Decimal) -> str:
    return f"UGX {to_money(value):,.0f}"
