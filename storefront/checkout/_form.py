"""
Checkout form — delivery/payment state machine and field validation.

Derived defaults are pure functions of (settings, current selection);
CheckoutForm only keeps the current draft and re-validates it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error

from storefront._types import ZERO, MoneyLike, money
from storefront.checkout._messages import DEFAULT_LANGUAGE, message
from storefront.checkout._settings import StoreSettings
from storefront.checkout._types import (
    CheckoutDraft,
    DeliveryMethod,
    PaymentMethod,
    REQUIRED_ADDRESS_FIELDS,
)
from storefront.fee._types import BlockedReason, FeeQuote

if TYPE_CHECKING:
    from storefront.cart._cart import Cart

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_LENGTHS: dict[str, int] = {
    "name": 2,
    "phone": 8,
    "street": 3,
    "number": 1,
    "neighborhood": 2,
    "city": 2,
    "postal_code": 5,
}


@dataclass(frozen=True, slots=True)
class FormError:
    """Rejected form transition."""

    code: str
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Derived Defaults — Pure Functions
# ═══════════════════════════════════════════════════════════════════════════════


def enabled_delivery_methods(settings: StoreSettings) -> tuple[DeliveryMethod, ...]:
    methods: list[DeliveryMethod] = []
    if settings.delivery_enabled:
        methods.append(DeliveryMethod.DELIVERY)
    if settings.pickup_enabled:
        methods.append(DeliveryMethod.PICKUP)
    return tuple(methods)


def resolve_delivery_method(
    settings: StoreSettings,
    current: DeliveryMethod | None = None,
) -> DeliveryMethod:
    """
    Delivery method the form must show for this configuration.

    Keeps ``current`` when the store allows it, otherwise forces the only
    enabled method. Defaults to DELIVERY when both are enabled.
    """
    enabled = enabled_delivery_methods(settings)
    if not enabled:
        raise ValueError("store has both delivery and pickup disabled")
    if current is not None and current in enabled:
        return current
    return enabled[0]


def allowed_payment_methods(
    settings: StoreSettings,
    method: DeliveryMethod,
) -> tuple[PaymentMethod, ...]:
    if method is DeliveryMethod.DELIVERY:
        allowed = settings.delivery_payments
    else:
        allowed = settings.pickup_payments
    if settings.redirect_enabled and PaymentMethod.EXTERNAL_REDIRECT not in allowed:
        allowed = (*allowed, PaymentMethod.EXTERNAL_REDIRECT)
    return allowed


def default_payment_method(
    settings: StoreSettings,
    method: DeliveryMethod,
) -> PaymentMethod:
    """Pickup prefers cash, delivery prefers pix; else the first allowed."""
    allowed = allowed_payment_methods(settings, method)
    preferred = PaymentMethod.CASH if method is DeliveryMethod.PICKUP else PaymentMethod.PIX
    if preferred in allowed:
        return preferred
    return allowed[0]


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def _too_short(value: str, field_name: str) -> bool:
    return len(value.strip()) < MIN_LENGTHS[field_name]


def validate_draft(
    draft: CheckoutDraft,
    settings: StoreSettings,
    language: str = DEFAULT_LANGUAGE,
    *,
    subtotal: Decimal | None = None,
    fee: Decimal | None = None,
) -> dict[str, str]:
    """
    Field-scoped validation errors, localized.

    Address fields are only checked under DELIVERY. Empty dict means valid.
    """
    errors: dict[str, str] = {}
    contact = draft.contact

    if _too_short(contact.name, "name"):
        errors["name"] = message("name", language)
    if not EMAIL_PATTERN.match(contact.email.strip()):
        errors["email"] = message("email", language)
    if _too_short(contact.phone, "phone"):
        errors["phone"] = message("phone", language)

    if draft.needs_address:
        for field_name in REQUIRED_ADDRESS_FIELDS:
            if _too_short(getattr(draft.address, field_name), field_name):
                errors[field_name] = message(field_name, language)

    if draft.payment_method not in allowed_payment_methods(settings, draft.delivery_method):
        errors["payment_method"] = message("payment_method", language)

    if subtotal is not None:
        if settings.min_order > ZERO and subtotal < settings.min_order:
            errors["min_order"] = message("min_order", language)
        if (
            draft.payment_method is PaymentMethod.CASH
            and draft.change_for is not None
            and draft.change_for < subtotal + (fee or ZERO)
        ):
            errors["change_for"] = message("change_for", language)

    return errors


def quote_for(draft: CheckoutDraft, quote: FeeQuote) -> FeeQuote:
    """
    ``quote`` as it applies to ``draft``.

    A delivery quote computed for a different address counts as not yet
    computed, so editing a priced address never keeps the old fee.
    """
    if draft.needs_address and not quote.applies_to(draft.address.quote_key):
        return FeeQuote.indeterminate()
    return quote


def blocked_message(
    draft: CheckoutDraft,
    quote: FeeQuote,
    language: str = DEFAULT_LANGUAGE,
) -> str | None:
    """User-facing reason the draft cannot be submitted with this quote."""
    if quote.blocked_reason is BlockedReason.OUTSIDE_AREA:
        return message("outside_area", language)
    if quote.blocked_reason is BlockedReason.CALCULATION_ERROR:
        return message("calculation_error", language)
    if draft.needs_address and quote_for(draft, quote).is_indeterminate:
        return message("fee_pending", language)
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout Form — State Machine
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutForm:
    """
    Checkout form state: delivery method × payment method, plus fields.

    Example:
        form = CheckoutForm(settings, cart=cart)
        form.update_contact(name="Ana", email="ana@example.com", phone="11999990000")
        form.select_delivery_method(DeliveryMethod.PICKUP)   # payment → cash
        form.apply_quote(await tracker.watch(form.draft.delivery_method, form.draft.address))
        if form.is_valid and form.submission_block() is None:
            ...
    """

    def __init__(
        self,
        settings: StoreSettings,
        draft: CheckoutDraft | None = None,
        *,
        cart: Cart | None = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._settings = settings
        self._cart = cart
        self._language = language
        self._quote = FeeQuote.indeterminate()
        self._draft = self._conform(draft if draft is not None else CheckoutDraft())
        self._errors: dict[str, str] = {}
        self._revalidate()

    # ── state ────────────────────────────────────────────────────────────────

    @property
    def draft(self) -> CheckoutDraft:
        return self._draft

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def language(self) -> str:
        return self._language

    @property
    def quote(self) -> FeeQuote:
        return self._quote

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def is_valid(self) -> bool:
        return not self._errors

    @property
    def payment_options(self) -> tuple[PaymentMethod, ...]:
        return allowed_payment_methods(self._settings, self._draft.delivery_method)

    @property
    def delivery_options(self) -> tuple[DeliveryMethod, ...]:
        return enabled_delivery_methods(self._settings)

    # ── transitions ──────────────────────────────────────────────────────────

    def select_delivery_method(
        self, method: DeliveryMethod
    ) -> Result[CheckoutDraft, FormError]:
        """
        Switch delivery/pickup.

        Rejected when the store disabled ``method``. A change resets the
        payment method to the branch default.
        """
        if method not in enabled_delivery_methods(self._settings):
            return Error(FormError("DELIVERY_METHOD_DISABLED", f"{method} is not available"))
        if method is not self._draft.delivery_method:
            self._draft = replace(
                self._draft,
                delivery_method=method,
                payment_method=default_payment_method(self._settings, method),
            )
            if method is DeliveryMethod.PICKUP:
                self._quote = FeeQuote.free()
            else:
                self._quote = FeeQuote.indeterminate()
            self._revalidate()
        return Ok(self._draft)

    def select_payment_method(
        self, payment: PaymentMethod
    ) -> Result[CheckoutDraft, FormError]:
        if payment not in self.payment_options:
            return Error(FormError("PAYMENT_METHOD_DISABLED", f"{payment} is not available"))
        self._draft = replace(self._draft, payment_method=payment)
        self._revalidate()
        return Ok(self._draft)

    def update_contact(self, **changes: str) -> CheckoutDraft:
        self._draft = self._draft.with_contact(**changes)
        self._revalidate()
        return self._draft

    def update_address(self, **changes: str) -> CheckoutDraft:
        self._draft = self._draft.with_address(**changes)
        self._quote = quote_for(self._draft, self._quote)
        self._revalidate()
        return self._draft

    def set_notes(self, notes: str) -> CheckoutDraft:
        self._draft = replace(self._draft, notes=notes)
        return self._draft

    def set_change_for(self, amount: MoneyLike | None) -> CheckoutDraft:
        change = money(amount) if amount is not None else None
        self._draft = replace(self._draft, change_for=change)
        self._revalidate()
        return self._draft

    def set_language(self, language: str) -> None:
        if language != self._language:
            self._language = language
            self._revalidate()

    def apply_settings(self, settings: StoreSettings) -> CheckoutDraft:
        """New store configuration; forces the selection back into range."""
        self._settings = settings
        before = self._draft.delivery_method
        self._draft = self._conform(self._draft)
        if self._draft.delivery_method is not before:
            logger.info(
                "Delivery method forced from %s to %s by store settings",
                before,
                self._draft.delivery_method,
            )
            if self._draft.delivery_method is DeliveryMethod.PICKUP:
                self._quote = FeeQuote.free()
            else:
                self._quote = FeeQuote.indeterminate()
        self._revalidate()
        return self._draft

    def apply_quote(self, quote: FeeQuote) -> None:
        current = quote_for(self._draft, quote)
        if quote.fee is not None and current.fee is None:
            logger.debug("Ignoring quote computed for %r", quote.address_key)
        self._quote = current
        self._revalidate()

    # ── submission ───────────────────────────────────────────────────────────

    def submission_block(self, quote: FeeQuote | None = None) -> str | None:
        """Message explaining why submit is disabled, or None."""
        return blocked_message(
            self._draft,
            quote if quote is not None else self._quote,
            self._language,
        )

    # ── internals ────────────────────────────────────────────────────────────

    def _conform(self, draft: CheckoutDraft) -> CheckoutDraft:
        method = resolve_delivery_method(self._settings, draft.delivery_method)
        payment = draft.payment_method
        if method is not draft.delivery_method or payment not in allowed_payment_methods(
            self._settings, method
        ):
            payment = default_payment_method(self._settings, method)
        return replace(draft, delivery_method=method, payment_method=payment)

    def _revalidate(self) -> None:
        subtotal = self._cart.subtotal() if self._cart is not None else None
        self._errors = validate_draft(
            self._draft,
            self._settings,
            self._language,
            subtotal=subtotal,
            fee=self._quote.fee,
        )


__all__ = (
    "EMAIL_PATTERN",
    "MIN_LENGTHS",
    "FormError",
    "enabled_delivery_methods",
    "resolve_delivery_method",
    "allowed_payment_methods",
    "default_payment_method",
    "validate_draft",
    "quote_for",
    "blocked_message",
    "CheckoutForm",
)
