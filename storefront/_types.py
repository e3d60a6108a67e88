"""
Core types for storefront.

Identifier aliases + money helpers.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# ═══════════════════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════════════════

type AccountId = str
type OrderId = str
type LineId = str

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

type MoneyLike = Decimal | int | float | str


def money(value: MoneyLike) -> Decimal:
    """
    Normalize an amount to a two-place Decimal.

    Floats go through str() first so 7.99 stays 7.99.

        money(7.99) * 2  # Decimal("15.98")
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Type aliases
    "AccountId",
    "OrderId",
    "LineId",
    # Money
    "CENT",
    "ZERO",
    "MoneyLike",
    "money",
)
