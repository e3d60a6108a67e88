"""
Fee calculator — flat-rate or distance-priced delivery fee.

Geocode the customer address, measure the haversine distance to the store
and look the distance up in the step table.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront.checkout._types import Address, DeliveryMethod
from storefront.fee._cache import GeocodeCache
from storefront.fee._table import FeeTable, DEFAULT_FEE_TABLE, haversine_km
from storefront.fee._types import BlockedReason, Coordinates, FeeQuote

if TYPE_CHECKING:
    from storefront.ports import Geocoder

logger = logging.getLogger(__name__)


def _is_valid_point(coords: object) -> bool:
    return (
        isinstance(coords, Coordinates)
        and math.isfinite(coords.lat)
        and math.isfinite(coords.lng)
        and -90.0 <= coords.lat <= 90.0
        and -180.0 <= coords.lng <= 180.0
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Fee Calculator
# ═══════════════════════════════════════════════════════════════════════════════


class FeeCalculator:
    """
    Resolves the delivery fee for an address.

    Example:
        calculator = FeeCalculator(geocoder, settings.fee_table)
        quote = await calculator.compute_fee(
            DeliveryMethod.DELIVERY, draft.address, settings.origin,
        )
        if quote.is_blocked:
            ...
    """

    def __init__(
        self,
        geocoder: Geocoder,
        table: FeeTable = DEFAULT_FEE_TABLE,
        cache: GeocodeCache | None = None,
    ) -> None:
        self._geocoder = geocoder
        self._table = table
        self._cache = cache if cache is not None else GeocodeCache()

    @property
    def table(self) -> FeeTable:
        return self._table

    async def compute_fee(
        self,
        method: DeliveryMethod,
        address: Address,
        origin: Coordinates | None,
    ) -> FeeQuote:
        """
        Quote the fee.

        PICKUP is always free and never touches the network. Missing address
        fields or an unknown store origin give an indeterminate quote, which
        callers treat as "not yet computable".
        """
        if method is DeliveryMethod.PICKUP:
            return FeeQuote.free()

        if not address.is_complete or origin is None:
            return FeeQuote.indeterminate()

        key = address.quote_key
        located = await self.locate(address)
        match located:
            case Error(reason):
                logger.warning("Delivery fee calculation failed: %s", reason)
                return FeeQuote.blocked(BlockedReason.CALCULATION_ERROR, address_key=key)
            case Ok(coords):
                distance = haversine_km(origin, coords)

        if not math.isfinite(distance):
            logger.warning("Non-finite distance for %r", key)
            return FeeQuote.blocked(BlockedReason.CALCULATION_ERROR, address_key=key)

        fee = self._table.fee_for(distance)
        if fee is None:
            logger.info(
                "Address %.2f km away is outside the %.1f km service radius",
                distance,
                self._table.max_radius_km,
            )
            return FeeQuote.blocked(
                BlockedReason.OUTSIDE_AREA, distance_km=distance, address_key=key
            )

        return FeeQuote.priced(fee, distance, address_key=key)

    async def locate(self, address: Address) -> Result[Coordinates, str]:
        """Geocode an address, served from the LRU when seen before."""
        text = address.to_text()
        cached = self._cache.get(text)
        if cached is not None:
            return Ok(cached)

        result = await L.catching_async(
            lambda: self._geocoder.geocode(text),
            on_error=lambda e: f"geocoder error: {e}",
        )
        match result:
            case Ok(None):
                return Error("address not found")
            case Ok(coords) if _is_valid_point(coords):
                self._cache.set(text, coords)
                return Ok(coords)
            case Ok(other):
                return Error(f"malformed geocoder response: {other!r}")
            case Error(e):
                return Error(e)


__all__ = ("FeeCalculator",)
