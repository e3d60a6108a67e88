"""
Order administration — role-gated status changes and tracking queries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront._types import AccountId, OrderId
from storefront.orders._types import (
    CheckoutError,
    ErrorCode,
    OrderQuery,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
    Role,
    can_transition,
)

if TYPE_CHECKING:
    from storefront.ports import OrderStore, PaymentGateway, RoleStore

logger = logging.getLogger(__name__)

# Provider status → order status; anything else leaves the order alone.
PAYMENT_OUTCOMES: dict[str, OrderStatus] = {
    PaymentStatus.PAID: OrderStatus.PENDING,
    PaymentStatus.FAILED: OrderStatus.CANCELLED,
    PaymentStatus.EXPIRED: OrderStatus.CANCELLED,
}


def _store_error(e: Exception) -> CheckoutError:
    return CheckoutError(ErrorCode.STORE_ERROR, f"Order storage failed: {e}")


class OrderAdmin:
    """
    Back-office operations on stored orders.

    Example:
        admin = OrderAdmin(orders, roles, payments)
        await admin.update_status(staff_id, order_id, OrderStatus.PROCESSING)
        await admin.customer_orders(customer_id)
    """

    def __init__(
        self,
        orders: OrderStore,
        roles: RoleStore,
        payments: PaymentGateway | None = None,
    ) -> None:
        self._orders = orders
        self._roles = roles
        self._payments = payments

    async def update_status(
        self,
        actor_id: AccountId,
        order_id: OrderId,
        status: OrderStatus,
    ) -> Result[OrderRecord, CheckoutError]:
        allowed = await L.catching_async(
            lambda: self._roles.has_role(actor_id, Role.ADMIN),
            on_error=_store_error,
        )
        match allowed:
            case Error(e):
                return Error(e)
            case Ok(False):
                logger.warning("Account %s tried to change order %s without admin role", actor_id, order_id)
                return Error(CheckoutError(ErrorCode.FORBIDDEN, "Only administrators can change orders"))
            case Ok(_):
                pass

        return await self._transition(order_id, status)

    async def reconcile_payment(
        self, order_id: OrderId
    ) -> Result[OrderRecord, CheckoutError]:
        """
        Pull the provider status for an order awaiting payment.

        paid → pending, failed/expired → cancelled; still pending → unchanged.
        """
        found = await self._get(order_id)
        match found:
            case Error(e):
                return Error(e)
            case Ok(order):
                pass

        if order.status is not OrderStatus.AWAITING_PAYMENT or not order.payment_reference:
            return Ok(order)
        if self._payments is None:
            return Error(CheckoutError(ErrorCode.PAYMENT_CHECK_FAILED, "No payment provider configured"))

        reference = order.payment_reference
        checked = await L.catching_async(
            lambda: self._payments.check_status(reference),
            on_error=lambda e: CheckoutError(ErrorCode.PAYMENT_CHECK_FAILED, f"Payment status check failed: {e}"),
        )
        match checked:
            case Error(e):
                logger.warning("Could not reconcile order %s: %s", order_id, e.message)
                return Error(e)
            case Ok(provider_status):
                target = PAYMENT_OUTCOMES.get(str(provider_status))

        if target is None:
            logger.debug("Order %s payment still %s", order_id, provider_status)
            return Ok(order)
        logger.info("Order %s payment %s → %s", order_id, provider_status, target)
        return await self._transition(order_id, target)

    async def list_orders(
        self, query: OrderQuery | None = None
    ) -> Result[list[OrderRecord], CheckoutError]:
        q = query if query is not None else OrderQuery()
        return await L.catching_async(lambda: self._orders.query(q), on_error=_store_error)

    async def customer_orders(
        self, account_id: AccountId
    ) -> Result[list[OrderRecord], CheckoutError]:
        return await self.list_orders(OrderQuery(owner_account_id=account_id))

    # ── internals ────────────────────────────────────────────────────────────

    async def _get(self, order_id: OrderId) -> Result[OrderRecord, CheckoutError]:
        found = await L.catching_async(lambda: self._orders.get(order_id), on_error=_store_error)
        match found:
            case Ok(None):
                return Error(CheckoutError(ErrorCode.NOT_FOUND, f"Order {order_id} not found"))
            case Ok(order):
                return Ok(order)
            case Error(e):
                return Error(e)

    async def _transition(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[OrderRecord, CheckoutError]:
        found = await self._get(order_id)
        match found:
            case Error(e):
                return Error(e)
            case Ok(order):
                pass

        if not can_transition(order.status, status):
            return Error(
                CheckoutError(
                    ErrorCode.ILLEGAL_TRANSITION,
                    f"Cannot move order from {order.status} to {status}",
                )
            )

        updated = await L.catching_async(
            lambda: self._orders.update_status(order_id, status, datetime.now(timezone.utc)),
            on_error=_store_error,
        )
        match updated:
            case Ok(None):
                return Error(CheckoutError(ErrorCode.NOT_FOUND, f"Order {order_id} not found"))
            case Ok(record):
                logger.info("Order %s: %s → %s", order_id, order.status, record.status)
                return Ok(record)
            case Error(e):
                return Error(e)


__all__ = ("PAYMENT_OUTCOMES", "OrderAdmin")
