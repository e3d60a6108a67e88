"""
Checkout — form state machine for delivery, payment and address fields.

    from storefront import checkout as Co

    form = Co.CheckoutForm(settings, cart=cart)
    form.select_delivery_method(Co.DeliveryMethod.PICKUP)
    form.errors  # {"name": "Name is required", ...}
"""

from storefront.checkout._types import (
    DeliveryMethod,
    PaymentMethod,
    Contact,
    Address,
    CheckoutDraft,
    REQUIRED_ADDRESS_FIELDS,
)
from storefront.checkout._settings import StoreSettings
from storefront.checkout._messages import MESSAGES, message
from storefront.checkout._form import (
    FormError,
    CheckoutForm,
    enabled_delivery_methods,
    resolve_delivery_method,
    allowed_payment_methods,
    default_payment_method,
    validate_draft,
    quote_for,
    blocked_message,
)

__all__ = (
    # Types
    "DeliveryMethod",
    "PaymentMethod",
    "Contact",
    "Address",
    "CheckoutDraft",
    "REQUIRED_ADDRESS_FIELDS",
    # Settings
    "StoreSettings",
    # Messages
    "MESSAGES",
    "message",
    # Form
    "FormError",
    "CheckoutForm",
    "enabled_delivery_methods",
    "resolve_delivery_method",
    "allowed_payment_methods",
    "default_payment_method",
    "validate_draft",
    "quote_for",
    "blocked_message",
)
