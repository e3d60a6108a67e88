"""
Cart types — line items.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront._types import LineId, MoneyLike, money

type SelectedOptions = dict[str, list[str]]
"""Option label → chosen variation labels, in the order the customer picked."""


def options_signature(options: SelectedOptions) -> str:
    """
    Serialized form used to decide whether two lines are the same item.

    Order-sensitive: {"a": [...], "b": [...]} and {"b": [...], "a": [...]}
    are different lines.
    """
    return json.dumps(options, ensure_ascii=False, separators=(",", ":"))


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartItem:
    """What "add to cart" hands over."""

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    selected_options: SelectedOptions = field(default_factory=dict)

    @classmethod
    def of(
        cls,
        product_id: str,
        name: str,
        unit_price: MoneyLike,
        quantity: int = 1,
        selected_options: SelectedOptions | None = None,
    ) -> CartItem:
        return cls(
            product_id=product_id,
            name=name,
            unit_price=money(unit_price),
            quantity=quantity,
            selected_options=dict(selected_options or {}),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════

type OptionPrices = dict[str, dict[str, Decimal]]
"""Option label → variation label → surcharge on top of the base price."""


@dataclass(frozen=True, slots=True)
class Product:
    """
    Menu entry as the store prices it.

    Example:
        pizza = Product("pizza", "Margherita", Decimal("39.90"),
                        options={"Size": {"M": Decimal("0.00"), "L": Decimal("8.00")}})
        pizza.unit_price({"Size": ["L"]})  # Decimal("47.90")
    """

    id: str
    name: str
    price: Decimal
    options: OptionPrices = field(default_factory=dict)
    available: bool = True

    def unit_price(self, selected: SelectedOptions) -> Decimal:
        """Base price plus every chosen variation; unknown choices raise ValueError."""
        total = self.price
        for label, choices in selected.items():
            variations = self.options.get(label)
            if variations is None:
                raise ValueError(f"{self.id} has no option {label!r}")
            for choice in choices:
                if choice not in variations:
                    raise ValueError(f"{self.id} option {label!r} has no variation {choice!r}")
                total += variations[choice]
        return money(total)

    def item(
        self, quantity: int = 1, selected_options: SelectedOptions | None = None
    ) -> CartItem:
        options = dict(selected_options or {})
        return CartItem.of(self.id, self.name, self.unit_price(options), quantity, options)


# ═══════════════════════════════════════════════════════════════════════════════
# Line
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One cart entry.

    Note: line_total is derived, so unit_price * quantity always holds.
    """

    id: LineId
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    selected_options: SelectedOptions = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)

    @property
    def signature(self) -> tuple[str, str]:
        return (self.product_id, options_signature(self.selected_options))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "selected_options": self.selected_options,
            "line_total": str(self.line_total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartLine:
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"invalid quantity {quantity} for line {data['id']}")
        unit_price = money(data["unit_price"])
        if unit_price < 0:
            raise ValueError(f"negative unit price {unit_price} for line {data['id']}")
        return cls(
            id=str(data["id"]),
            product_id=str(data["product_id"]),
            name=str(data["name"]),
            unit_price=unit_price,
            quantity=quantity,
            selected_options={
                str(k): [str(v) for v in vs]
                for k, vs in dict(data.get("selected_options") or {}).items()
            },
        )


__all__ = (
    "SelectedOptions",
    "options_signature",
    "CartItem",
    "OptionPrices",
    "Product",
    "CartLine",
)
