"""
Quote tracker — recompute-on-change with last-write-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storefront.checkout._types import Address, DeliveryMethod
from storefront.fee._calculator import FeeCalculator
from storefront.fee._types import Coordinates, FeeQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuoteSnapshot:
    """The watched fields a quote was requested for."""

    delivery_method: DeliveryMethod
    address: Address


class QuoteTracker:
    """
    Holds the current quote for a checkout session.

    Call watch() on every change of a watched field. Each request is keyed to
    the snapshot that produced it; a result that arrives after a newer
    snapshot was watched is discarded.

    Example:
        tracker = QuoteTracker(calculator, settings.origin)
        quote = await tracker.watch(draft.delivery_method, draft.address)
    """

    def __init__(self, calculator: FeeCalculator, origin: Coordinates | None) -> None:
        self._calculator = calculator
        self._origin = origin
        self._latest: QuoteSnapshot | None = None
        self._resolved_for: QuoteSnapshot | None = None
        self._current = FeeQuote.indeterminate()
        self._discarded = 0

    @property
    def current(self) -> FeeQuote:
        return self._current

    @property
    def discarded(self) -> int:
        """Number of stale results dropped so far."""
        return self._discarded

    async def watch(self, method: DeliveryMethod, address: Address) -> FeeQuote:
        snapshot = QuoteSnapshot(method, address.normalized())
        self._latest = snapshot

        # Immediate invalidations, no round trip.
        if method is DeliveryMethod.PICKUP:
            self._resolved_for = None
            self._current = FeeQuote.free()
            return self._current
        if not snapshot.address.is_complete or self._origin is None:
            self._resolved_for = None
            self._current = FeeQuote.indeterminate()
            return self._current

        if snapshot == self._resolved_for:
            return self._current

        self._current = FeeQuote.indeterminate()
        quote = await self._calculator.compute_fee(method, snapshot.address, self._origin)

        if snapshot != self._latest:
            self._discarded += 1
            logger.debug("Discarding stale quote for %r", snapshot.address.to_text())
            return self._current

        self._current = quote
        self._resolved_for = snapshot
        return quote


__all__ = ("QuoteSnapshot", "QuoteTracker")
