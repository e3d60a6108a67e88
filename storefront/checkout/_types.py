"""
Checkout types — delivery/payment choices and the draft form state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import StrEnum

# ═══════════════════════════════════════════════════════════════════════════════
# Choices
# ═══════════════════════════════════════════════════════════════════════════════


class DeliveryMethod(StrEnum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentMethod(StrEnum):
    """
    How the customer pays.

    EXTERNAL_REDIRECT hands the customer to the payment provider's page;
    every other method is settled on delivery or at the counter.
    """

    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PIX = "pix"
    EXTERNAL_REDIRECT = "external_redirect"

    @property
    def requires_redirect(self) -> bool:
        return self is PaymentMethod.EXTERNAL_REDIRECT


# ═══════════════════════════════════════════════════════════════════════════════
# Contact & Address
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Contact:
    name: str = ""
    email: str = ""
    phone: str = ""


REQUIRED_ADDRESS_FIELDS = ("street", "number", "neighborhood", "city", "postal_code")


@dataclass(frozen=True, slots=True)
class Address:
    """Delivery address. Only the five REQUIRED_ADDRESS_FIELDS gate pricing."""

    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    postal_code: str = ""
    state: str = ""
    complement: str = ""

    def missing_fields(self) -> tuple[str, ...]:
        return tuple(
            name for name in REQUIRED_ADDRESS_FIELDS if not getattr(self, name).strip()
        )

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def normalized(self) -> Address:
        """Whitespace-trimmed copy; used as the quote snapshot key."""
        return Address(
            street=self.street.strip(),
            number=self.number.strip(),
            neighborhood=self.neighborhood.strip(),
            city=self.city.strip(),
            postal_code=self.postal_code.strip(),
            state=self.state.strip(),
            complement=self.complement.strip(),
        )

    def to_text(self) -> str:
        """
        Single-line address handed to the geocoder.

            "Rua A, 12, Centro, Campinas, SP, 13010-000"
        """
        parts = [
            self.street,
            self.number,
            self.neighborhood,
            self.city,
            self.state,
            self.postal_code,
        ]
        return ", ".join(p.strip() for p in parts if p.strip())

    @property
    def quote_key(self) -> str:
        """Pricing identity: two addresses with the same key geocode the same."""
        return self.to_text()

    def to_dict(self) -> dict[str, str]:
        return {
            "street": self.street,
            "number": self.number,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "postal_code": self.postal_code,
            "state": self.state,
            "complement": self.complement,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Draft
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutDraft:
    """
    Transient checkout form state.

    Note: draft_id stays stable for the lifetime of the form and is the
    idempotency key for submission.
    """

    contact: Contact = field(default_factory=Contact)
    delivery_method: DeliveryMethod = DeliveryMethod.DELIVERY
    address: Address = field(default_factory=Address)
    payment_method: PaymentMethod = PaymentMethod.PIX
    notes: str = ""
    change_for: Decimal | None = None
    draft_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def needs_address(self) -> bool:
        return self.delivery_method is DeliveryMethod.DELIVERY

    def with_contact(self, **changes: str) -> CheckoutDraft:
        return replace(self, contact=replace(self.contact, **changes))

    def with_address(self, **changes: str) -> CheckoutDraft:
        return replace(self, address=replace(self.address, **changes))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DeliveryMethod",
    "PaymentMethod",
    "Contact",
    "REQUIRED_ADDRESS_FIELDS",
    "Address",
    "CheckoutDraft",
)
