"""
Order types — status machine, payload shapes and checkout errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from storefront._types import AccountId, OrderId, ZERO, money
from storefront.cart._types import CartLine

# ═══════════════════════════════════════════════════════════════════════════════
# Status
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(StrEnum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PROCESSING = "processing"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.AWAITING_PAYMENT: frozenset(
        {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.CANCELLED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.DELIVERING, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


class Role(StrEnum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class PaymentIntent:
    intent_id: str
    redirect_url: str


# ═══════════════════════════════════════════════════════════════════════════════
# Payload
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderItem:
    """Normalized line item as stored on the order."""

    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    selected_options: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_line(cls, line: CartLine) -> OrderItem:
        return cls(
            product_id=line.product_id,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
            selected_options={k: list(v) for k, v in line.selected_options.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
            "selected_options": self.selected_options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderItem:
        return cls(
            product_id=data["product_id"],
            name=data["name"],
            quantity=int(data["quantity"]),
            unit_price=money(data["unit_price"]),
            line_total=money(data["line_total"]),
            selected_options=dict(data.get("selected_options") or {}),
        )


@dataclass(frozen=True, slots=True)
class OrderAddress:
    """
    Address block stored on the order, enriched with contact and checkout
    choices so the kitchen and the courier need nothing else.
    """

    name: str
    email: str
    phone: str
    delivery_method: str
    payment_method: str
    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    postal_code: str = ""
    state: str = ""
    complement: str = ""
    notes: str = ""
    change_for: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "delivery_method": self.delivery_method,
            "payment_method": self.payment_method,
            "street": self.street,
            "number": self.number,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "postal_code": self.postal_code,
            "state": self.state,
            "complement": self.complement,
            "notes": self.notes,
            "change_for": str(self.change_for) if self.change_for is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderAddress:
        change = data.get("change_for")
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            delivery_method=data.get("delivery_method", ""),
            payment_method=data.get("payment_method", ""),
            street=data.get("street", ""),
            number=data.get("number", ""),
            neighborhood=data.get("neighborhood", ""),
            city=data.get("city", ""),
            postal_code=data.get("postal_code", ""),
            state=data.get("state", ""),
            complement=data.get("complement", ""),
            notes=data.get("notes", ""),
            change_for=money(change) if change is not None else None,
        )


@dataclass(frozen=True, slots=True)
class NewOrder:
    """
    Order payload handed to the order store.

    Note: total is always subtotal + delivery_fee; use build().
    """

    owner_account_id: AccountId
    items: tuple[OrderItem, ...]
    address: OrderAddress
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    payment_reference: str | None = None

    def __post_init__(self) -> None:
        if not self.owner_account_id:
            raise ValueError("an order needs an owning account")
        if self.total != money(self.subtotal + self.delivery_fee):
            raise ValueError(
                f"total {self.total} != subtotal {self.subtotal} + fee {self.delivery_fee}"
            )

    @classmethod
    def build(
        cls,
        owner_account_id: AccountId,
        items: tuple[OrderItem, ...],
        address: OrderAddress,
        delivery_fee: Decimal,
        status: OrderStatus,
        payment_reference: str | None = None,
    ) -> NewOrder:
        subtotal = money(sum((item.line_total for item in items), ZERO))
        fee = money(delivery_fee)
        return cls(
            owner_account_id=owner_account_id,
            items=items,
            address=address,
            subtotal=subtotal,
            delivery_fee=fee,
            total=money(subtotal + fee),
            status=status,
            payment_reference=payment_reference,
        )


@dataclass(frozen=True, slots=True)
class OrderRecord:
    id: OrderId
    owner_account_id: AccountId
    items: tuple[OrderItem, ...]
    address: OrderAddress
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    payment_reference: str | None = None


@dataclass(frozen=True, slots=True)
class OrderQuery:
    """Tracking filter; every field is optional and they combine with AND."""

    owner_account_id: AccountId | None = None
    statuses: tuple[OrderStatus, ...] = ()
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int | None = None

    def matches(self, order: OrderRecord) -> bool:
        if self.owner_account_id is not None and order.owner_account_id != self.owner_account_id:
            return False
        if self.statuses and order.status not in self.statuses:
            return False
        if self.created_from is not None and order.created_at < self.created_from:
            return False
        if self.created_to is not None and order.created_at > self.created_to:
            return False
        return True


@dataclass(frozen=True, slots=True)
class Submission:
    """Successful checkout: the stored order plus where to send the customer."""

    order: OrderRecord
    redirect_url: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorCode:
    FEE_BLOCKED = "FEE_BLOCKED"
    FEE_PENDING = "FEE_PENDING"
    EMPTY_CART = "EMPTY_CART"
    INVALID_DRAFT = "INVALID_DRAFT"
    PAYMENT_INTENT_FAILED = "PAYMENT_INTENT_FAILED"
    IDENTITY_FAILED = "IDENTITY_FAILED"
    ORDER_INSERT_FAILED = "ORDER_INSERT_FAILED"
    SUBMISSION_IN_FLIGHT = "SUBMISSION_IN_FLIGHT"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"
    UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
    # Admin
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    STORE_ERROR = "STORE_ERROR"
    PAYMENT_CHECK_FAILED = "PAYMENT_CHECK_FAILED"


class CheckoutError(Exception):
    """
    Single user-facing failure.

    Raised inside the submission graph, returned as Error(...) everywhere else.
    """

    def __init__(self, code: str, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"CheckoutError({self.code!r}, {self.message!r})"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "OrderStatus",
    "TRANSITIONS",
    "can_transition",
    "Role",
    "PaymentStatus",
    "PaymentIntent",
    "OrderItem",
    "OrderAddress",
    "NewOrder",
    "OrderRecord",
    "OrderQuery",
    "Submission",
    "ErrorCode",
    "CheckoutError",
)
