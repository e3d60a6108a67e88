"""
Fee — delivery fee quotes.

    from storefront import fee as F

    calculator = F.FeeCalculator(geocoder, F.DEFAULT_FEE_TABLE)
    quote = await calculator.compute_fee(method, address, origin)

    tracker = F.QuoteTracker(calculator, origin)
    quote = await tracker.watch(method, address)   # last-write-wins
"""

from storefront.fee._types import (
    Coordinates,
    BlockedReason,
    FeeQuote,
)
from storefront.fee._table import (
    FeeBand,
    FeeTable,
    DEFAULT_FEE_TABLE,
    haversine_km,
)
from storefront.fee._cache import GeocodeCache
from storefront.fee._calculator import FeeCalculator
from storefront.fee._tracker import QuoteSnapshot, QuoteTracker

__all__ = (
    # Types
    "Coordinates",
    "BlockedReason",
    "FeeQuote",
    # Table
    "FeeBand",
    "FeeTable",
    "DEFAULT_FEE_TABLE",
    "haversine_km",
    # Calculation
    "GeocodeCache",
    "FeeCalculator",
    "QuoteSnapshot",
    "QuoteTracker",
)
