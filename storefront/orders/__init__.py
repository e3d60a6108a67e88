"""
Orders — checkout submission and back-office status handling.

    from storefront.orders import OrderMaterializer, OrderAdmin, OrderStatus

    match await materializer.submit(draft, quote, session):
        case Ok(submission): ...
        case Error(e): print(e.code, e.message)
"""

from storefront.orders._types import (
    OrderStatus,
    TRANSITIONS,
    can_transition,
    Role,
    PaymentStatus,
    PaymentIntent,
    OrderItem,
    OrderAddress,
    NewOrder,
    OrderRecord,
    OrderQuery,
    Submission,
    ErrorCode,
    CheckoutError,
)
from storefront.orders._guard import RecordState, SubmissionGuard
from storefront.orders._graph import (
    SubmissionRequest,
    RequestNode,
    FeeGateNode,
    PaymentIntentNode,
    AccountNode,
    PersistOrderNode,
    build_address,
)
from storefront.orders._pricing import LineRequest, price_lines
from storefront.orders._materializer import owner_key, OrderMaterializer
from storefront.orders._admin import PAYMENT_OUTCOMES, OrderAdmin

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
    "RecordState",
    "SubmissionGuard",
    "SubmissionRequest",
    "RequestNode",
    "FeeGateNode",
    "PaymentIntentNode",
    "AccountNode",
    "PersistOrderNode",
    "build_address",
    "LineRequest",
    "price_lines",
    "owner_key",
    "OrderMaterializer",
    "PAYMENT_OUTCOMES",
    "OrderAdmin",
)
