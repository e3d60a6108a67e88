"""
Cart aggregator — client-held line items with durable persistence.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from decimal import Decimal

from storefront._types import ZERO, LineId, money
from storefront.cart._storage import CartStorage, CartPayload
from storefront.cart._types import CartItem, CartLine

logger = logging.getLogger(__name__)


def _default_line_id(product_id: str) -> LineId:
    return f"{product_id}-{uuid.uuid4().hex[:12]}"


class Cart:
    """
    Ordered collection of cart lines.

    Lines with the same product and identical selected options merge.
    Every mutation is written through to storage; a failed write is logged
    and the in-memory cart stays authoritative.

    Example:
        cart = Cart(JsonFileCartStorage("cart.json"))
        cart.add(CartItem.of("burger", "X-Burger", 7.99, quantity=2))
        cart.subtotal()  # Decimal("15.98")
    """

    def __init__(
        self,
        storage: CartStorage,
        id_factory: Callable[[str], LineId] | None = None,
    ) -> None:
        self._storage = storage
        self._new_id = id_factory or _default_line_id
        self._lines: list[CartLine] = self._restore()

    # ── queries ──────────────────────────────────────────────────────────────

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get(self, line_id: LineId) -> CartLine | None:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def subtotal(self) -> Decimal:
        return money(sum((line.line_total for line in self._lines), ZERO))

    def count(self) -> int:
        """Total units across all lines."""
        return sum(line.quantity for line in self._lines)

    # ── mutations ────────────────────────────────────────────────────────────

    def add(self, item: CartItem) -> CartLine:
        if item.quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {item.quantity}")
        if item.unit_price < ZERO:
            raise ValueError(f"unit price cannot be negative, got {item.unit_price}")

        candidate = CartLine(
            id="",
            product_id=item.product_id,
            name=item.name,
            unit_price=item.unit_price,
            quantity=item.quantity,
            selected_options=dict(item.selected_options),
        )
        for index, line in enumerate(self._lines):
            if line.signature == candidate.signature:
                merged = replace(line, quantity=line.quantity + item.quantity)
                self._lines[index] = merged
                self._persist()
                return merged

        line = replace(candidate, id=self._new_id(item.product_id))
        self._lines.append(line)
        self._persist()
        return line

    def remove(self, line_id: LineId) -> None:
        self._lines = [line for line in self._lines if line.id != line_id]
        self._persist()

    def set_quantity(self, line_id: LineId, quantity: int) -> CartLine | None:
        """Change a line's quantity. Values below 1 are ignored."""
        if quantity < 1:
            return self.get(line_id)
        for index, line in enumerate(self._lines):
            if line.id == line_id:
                updated = replace(line, quantity=quantity)
                self._lines[index] = updated
                self._persist()
                return updated
        return None

    def clear(self) -> None:
        self._lines = []
        self._persist()

    # ── persistence ──────────────────────────────────────────────────────────

    def snapshot(self) -> CartPayload:
        return [line.to_dict() for line in self._lines]

    def _persist(self) -> None:
        try:
            self._storage.save(self.snapshot())
        except Exception:
            logger.exception("Failed to persist cart (%d lines)", len(self._lines))

    def _restore(self) -> list[CartLine]:
        try:
            payload = self._storage.load()
            if not payload:
                return []
            return [CartLine.from_dict(entry) for entry in payload]
        except Exception:
            logger.exception("Stored cart is unreadable, starting empty")
            return []


__all__ = ("Cart",)
