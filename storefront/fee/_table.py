"""
Fee table — distance bands to flat fees.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from storefront._types import MoneyLike, money
from storefront.fee._types import Coordinates

EARTH_RADIUS_KM = 6371.0


# ═══════════════════════════════════════════════════════════════════════════════
# Fee Band
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FeeBand:
    """Distances up to and including ``max_km`` cost ``fee``."""

    max_km: float
    fee: Decimal


# ═══════════════════════════════════════════════════════════════════════════════
# Fee Table — Monotonic Step Function
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FeeTable:
    """
    Monotonic step table mapping distance to a flat delivery fee.

    The last band's ``max_km`` is the service radius.

    Example:
        table = FeeTable.from_pairs([(2, 5.0), (4, 6.0), (6, 8.0)])
        table.fee_for(3.0)   # Decimal("6.00")
        table.fee_for(7.5)   # None: outside the service area

    Note: Immutable — with_band() returns a new table.
    """

    bands: tuple[FeeBand, ...]

    def __post_init__(self) -> None:
        if not self.bands:
            raise ValueError("fee table needs at least one band")
        previous = 0.0
        for band in self.bands:
            if band.max_km <= previous:
                raise ValueError("band distances must be strictly increasing")
            if band.fee < 0:
                raise ValueError("band fees must not be negative")
            previous = band.max_km

    @classmethod
    def from_pairs(cls, pairs: list[tuple[float, MoneyLike]]) -> FeeTable:
        return cls(tuple(FeeBand(float(km), money(fee)) for km, fee in pairs))

    @property
    def max_radius_km(self) -> float:
        return self.bands[-1].max_km

    def fee_for(self, distance_km: float) -> Decimal | None:
        """Fee for a distance, or None beyond the service radius."""
        for band in self.bands:
            if distance_km <= band.max_km:
                return band.fee
        return None

    def with_band(self, max_km: float, fee: MoneyLike) -> FeeTable:
        """
        Add or replace a band.

            table.with_band(12, 15.0)  # extend the radius to 12 km
        """
        kept = [b for b in self.bands if b.max_km != max_km]
        kept.append(FeeBand(float(max_km), money(fee)))
        return FeeTable(tuple(sorted(kept, key=lambda b: b.max_km)))


DEFAULT_FEE_TABLE = FeeTable.from_pairs(
    [(2, "5.00"), (4, "6.00"), (6, "8.00"), (8, "10.00"), (10, "12.00")]
)


# ═══════════════════════════════════════════════════════════════════════════════
# Distance
# ═══════════════════════════════════════════════════════════════════════════════


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    h = min(h, 1.0)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "EARTH_RADIUS_KM",
    "FeeBand",
    "FeeTable",
    "DEFAULT_FEE_TABLE",
    "haversine_km",
)
