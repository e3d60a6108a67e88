"""
Fee types — coordinates and quotes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from storefront._types import ZERO

# ═══════════════════════════════════════════════════════════════════════════════
# Coordinates
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coordinates:
    """WGS84 point in decimal degrees."""

    lat: float
    lng: float


# ═══════════════════════════════════════════════════════════════════════════════
# Blocked Reason
# ═══════════════════════════════════════════════════════════════════════════════


class BlockedReason(Enum):
    """
    Why a delivery cannot be priced.

    Both block submission; only the message differs.
    """

    OUTSIDE_AREA = "outside_area"
    CALCULATION_ERROR = "calculation_error"


# ═══════════════════════════════════════════════════════════════════════════════
# Fee Quote
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FeeQuote:
    """
    Current delivery fee computation for a draft address.

    Three shapes:
        priced         fee set, blocked_reason None
        indeterminate  fee None, blocked_reason None  (not yet computable)
        blocked        fee None, blocked_reason set

    Priced and blocked quotes carry the address_key (Address.quote_key) of
    the address they were computed for; a quote only applies to that address.
    """

    fee: Decimal | None
    distance_km: float | None = None
    blocked_reason: BlockedReason | None = None
    address_key: str | None = None

    @classmethod
    def free(cls) -> FeeQuote:
        return cls(fee=ZERO)

    @classmethod
    def indeterminate(cls) -> FeeQuote:
        return cls(fee=None)

    @classmethod
    def priced(
        cls, fee: Decimal, distance_km: float, address_key: str | None = None
    ) -> FeeQuote:
        return cls(fee=fee, distance_km=distance_km, address_key=address_key)

    @classmethod
    def blocked(
        cls,
        reason: BlockedReason,
        distance_km: float | None = None,
        address_key: str | None = None,
    ) -> FeeQuote:
        return cls(
            fee=None,
            distance_km=distance_km,
            blocked_reason=reason,
            address_key=address_key,
        )

    @property
    def is_blocked(self) -> bool:
        return self.blocked_reason is not None

    @property
    def is_indeterminate(self) -> bool:
        return self.fee is None and self.blocked_reason is None

    def applies_to(self, address_key: str) -> bool:
        return self.address_key == address_key


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("Coordinates", "BlockedReason", "FeeQuote")
