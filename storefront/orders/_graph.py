"""
Submission graph — fee gate → payment intent → account → order insert.

Each node depends on the previous one, so nodnod runs them strictly in
that order. A failing node raises CheckoutError; OrderMaterializer turns
it into Error(...).

Note: no ``from __future__ import annotations`` here, nodnod resolves the
__compose__ hints at runtime.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from combinators import lift as L
from kungfu import Ok, Error

from storefront import graph as G
from storefront._types import ZERO, AccountId, money
from storefront.cart._types import CartLine
from storefront.checkout._form import quote_for, validate_draft
from storefront.checkout._settings import StoreSettings
from storefront.checkout._types import CheckoutDraft
from storefront.fee._types import FeeQuote
from storefront.identity._resolver import GuestIdentityResolver
from storefront.identity._types import (
    Created,
    CreatedWithSubstitution,
    Failed,
    Session,
)
from storefront.orders._types import (
    CheckoutError,
    ErrorCode,
    NewOrder,
    OrderAddress,
    OrderItem,
    OrderStatus,
    PaymentIntent,
    Submission,
)
from storefront.ports import OrderStore, PaymentGateway

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SubmissionRequest:
    """Everything one submission needs, injected as a single value."""

    draft: CheckoutDraft
    quote: FeeQuote
    session: Session | None
    lines: tuple[CartLine, ...]
    settings: StoreSettings
    orders: OrderStore
    identity: GuestIdentityResolver
    payments: PaymentGateway | None = None

    @property
    def subtotal(self) -> Decimal:
        return money(sum((line.line_total for line in self.lines), ZERO))


@G.node
class RequestNode:
    """Entry point: wraps the SubmissionRequest input."""

    def __init__(self, data: SubmissionRequest) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, request: SubmissionRequest) -> "RequestNode":
        return cls(request)


# ═══════════════════════════════════════════════════════════════════════════════
# Readiness
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FeeGateNode:
    """
    Rejects drafts that cannot become orders yet.

    Runs before any collaborator is touched.
    """

    def __init__(self, fee: Decimal, subtotal: Decimal) -> None:
        self.fee = fee
        self.subtotal = subtotal

    @property
    def total(self) -> Decimal:
        return money(self.subtotal + self.fee)

    @classmethod
    def __compose__(cls, request: RequestNode) -> "FeeGateNode":
        req = request.data
        draft = req.draft

        if req.quote.is_blocked:
            raise CheckoutError(
                ErrorCode.FEE_BLOCKED,
                "Delivery is not available for this address",
            )
        if not req.lines:
            raise CheckoutError(ErrorCode.EMPTY_CART, "Your cart is empty")

        if draft.needs_address:
            quote = quote_for(draft, req.quote)
            if req.quote.fee is not None and quote.fee is None:
                logger.warning(
                    "Quote for %r does not match the draft address", req.quote.address_key
                )
            if quote.fee is None:
                raise CheckoutError(
                    ErrorCode.FEE_PENDING,
                    "Delivery fee is still being calculated",
                )
            fee = money(quote.fee)
        else:
            fee = ZERO

        subtotal = req.subtotal
        errors = validate_draft(draft, req.settings, subtotal=subtotal, fee=fee)
        if errors:
            raise CheckoutError(
                ErrorCode.INVALID_DRAFT,
                "Please review the highlighted fields",
                details=errors,
            )
        return cls(fee, subtotal)


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Intent
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class PaymentIntentNode:
    """Creates the provider intent for redirect payments; None otherwise."""

    def __init__(self, data: PaymentIntent | None) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls, request: RequestNode, gate: FeeGateNode
    ) -> "PaymentIntentNode":
        req = request.data
        if not req.draft.payment_method.requires_redirect:
            return cls(None)

        gateway = req.payments
        if gateway is None:
            raise CheckoutError(
                ErrorCode.PAYMENT_INTENT_FAILED,
                "Online payment is not available right now",
            )

        metadata = {
            "draft_id": req.draft.draft_id,
            "email": req.draft.contact.email.strip(),
        }
        result = await L.catching_async(
            lambda: gateway.create_intent(gate.total, req.settings.currency, metadata),
            on_error=lambda e: str(e) or type(e).__name__,
        )
        match result:
            case Ok(intent):
                logger.info("Payment intent %s created for %s", intent.intent_id, gate.total)
                return cls(intent)
            case Error(reason):
                logger.warning("Payment intent creation failed: %s", reason)
                raise CheckoutError(
                    ErrorCode.PAYMENT_INTENT_FAILED,
                    "Could not start the online payment, please try again",
                )


# ═══════════════════════════════════════════════════════════════════════════════
# Account
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class AccountNode:
    """Owning account: the session's, or a freshly created guest account."""

    def __init__(self, account_id: AccountId, created: bool) -> None:
        self.account_id = account_id
        self.created = created

    @classmethod
    async def __compose__(
        cls, request: RequestNode, intent: PaymentIntentNode
    ) -> "AccountNode":
        _ = intent  # Dependency injection
        req = request.data

        if req.session is not None:
            await req.identity.refresh_profile(req.session.account_id, req.draft)
            return cls(req.session.account_id, created=False)

        resolution = await req.identity.ensure_account(req.draft)
        match resolution:
            case Created(account) | CreatedWithSubstitution(account, _):
                return cls(account.id, created=True)
            case Failed(reason):
                logger.error("Identity resolution failed: %s", reason)
                raise CheckoutError(
                    ErrorCode.IDENTITY_FAILED,
                    "We could not process your order, please try again",
                )


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


def build_address(draft: CheckoutDraft) -> OrderAddress:
    contact = draft.contact
    address = draft.address.normalized() if draft.needs_address else None
    return OrderAddress(
        name=contact.name.strip(),
        email=contact.email.strip(),
        phone=contact.phone.strip(),
        delivery_method=str(draft.delivery_method),
        payment_method=str(draft.payment_method),
        street=address.street if address else "",
        number=address.number if address else "",
        neighborhood=address.neighborhood if address else "",
        city=address.city if address else "",
        postal_code=address.postal_code if address else "",
        state=address.state if address else "",
        complement=address.complement if address else "",
        notes=draft.notes.strip(),
        change_for=draft.change_for,
    )


@G.node
class PersistOrderNode:
    """Terminal node: write the order."""

    def __init__(self, data: Submission) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls,
        request: RequestNode,
        gate: FeeGateNode,
        intent: PaymentIntentNode,
        account: AccountNode,
    ) -> "PersistOrderNode":
        req = request.data
        payment = intent.data

        new_order = NewOrder.build(
            owner_account_id=account.account_id,
            items=tuple(OrderItem.from_line(line) for line in req.lines),
            address=build_address(req.draft),
            delivery_fee=gate.fee,
            status=OrderStatus.AWAITING_PAYMENT if payment else OrderStatus.PENDING,
            payment_reference=payment.intent_id if payment else None,
        )

        result = await L.catching_async(
            lambda: req.orders.insert(new_order),
            on_error=lambda e: str(e) or type(e).__name__,
        )
        match result:
            case Ok(record):
                logger.info(
                    "Order %s stored: total %s, status %s",
                    record.id,
                    record.total,
                    record.status,
                )
                return cls(Submission(record, payment.redirect_url if payment else None))
            case Error(reason):
                if account.created:
                    logger.warning(
                        "Order insert failed after creating account %s; account left orphaned",
                        account.account_id,
                    )
                logger.error("Order insert failed: %s", reason)
                raise CheckoutError(
                    ErrorCode.ORDER_INSERT_FAILED,
                    "We could not save your order, please try again",
                )


__all__ = (
    "SubmissionRequest",
    "RequestNode",
    "FeeGateNode",
    "PaymentIntentNode",
    "AccountNode",
    "build_address",
    "PersistOrderNode",
)
