"""
Store settings — configuration consumed by the checkout form.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from storefront._types import ZERO, MoneyLike, money
from storefront.checkout._types import DeliveryMethod, PaymentMethod
from storefront.fee._table import FeeTable, DEFAULT_FEE_TABLE
from storefront.fee._types import Coordinates

# Order matters: the first entry is the branch default.
DELIVERY_PAYMENTS = (
    PaymentMethod.PIX,
    PaymentMethod.CREDIT_CARD,
    PaymentMethod.DEBIT_CARD,
    PaymentMethod.CASH,
)
PICKUP_PAYMENTS = (
    PaymentMethod.CASH,
    PaymentMethod.PIX,
    PaymentMethod.CREDIT_CARD,
    PaymentMethod.DEBIT_CARD,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Store Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """
    Admin-controlled store configuration.

    Fluent builder pattern — chain methods to configure.

    Example:
        settings = (
            StoreSettings()
            .with_origin(-22.9056, -47.0608)
            .with_pickup(enabled=False)
            .with_redirect_payments()
            .with_min_order(25)
        )

    Note: Immutable — each method returns new StoreSettings.
    Passed explicitly to the checkout form, never read from a global.
    """

    delivery_enabled: bool = True
    pickup_enabled: bool = True
    origin: Coordinates | None = None
    fee_table: FeeTable = DEFAULT_FEE_TABLE
    delivery_payments: tuple[PaymentMethod, ...] = DELIVERY_PAYMENTS
    pickup_payments: tuple[PaymentMethod, ...] = PICKUP_PAYMENTS
    redirect_enabled: bool = False
    min_order: Decimal = ZERO
    currency: str = "BRL"

    def with_origin(self, lat: float, lng: float) -> StoreSettings:
        return replace(self, origin=Coordinates(lat, lng))

    def with_delivery(self, *, enabled: bool = True) -> StoreSettings:
        return replace(self, delivery_enabled=enabled)

    def with_pickup(self, *, enabled: bool = True) -> StoreSettings:
        return replace(self, pickup_enabled=enabled)

    def with_fee_table(self, table: FeeTable) -> StoreSettings:
        return replace(self, fee_table=table)

    def with_redirect_payments(self, enabled: bool = True) -> StoreSettings:
        return replace(self, redirect_enabled=enabled)

    def with_payments(
        self,
        method: DeliveryMethod,
        payments: tuple[PaymentMethod, ...],
    ) -> StoreSettings:
        """
        Replace the payment methods offered for one branch.

            .with_payments(DeliveryMethod.PICKUP, (PaymentMethod.CASH,))
        """
        if not payments:
            raise ValueError("a branch needs at least one payment method")
        if method is DeliveryMethod.DELIVERY:
            return replace(self, delivery_payments=payments)
        return replace(self, pickup_payments=payments)

    def with_min_order(self, amount: MoneyLike) -> StoreSettings:
        return replace(self, min_order=money(amount))

    def with_currency(self, currency: str) -> StoreSettings:
        return replace(self, currency=currency)


__all__ = ("DELIVERY_PAYMENTS", "PICKUP_PAYMENTS", "StoreSettings")
