"""
HTTP surface — FastAPI app over the checkout core.

Request models implement to_domain(), response models from_domain().
The caller is identified by the X-Account-Id header (set by the auth
gateway in front of this service); no header means a guest.

    app = create_app(Storefront.in_memory(AppSettings.from_env()))

Without a storefront, create_app() builds one from AppSettings on startup
(SQLAlchemy stores, OpenRouteService geocoder) and closes it on shutdown.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from kungfu import Ok, Error
from pydantic import BaseModel, Field

from storefront.adapters.memory import (
    MemoryCatalog,
    MemoryIdentityProvider,
    MemoryOrderStore,
    MemoryPaymentGateway,
    MemoryProfileStore,
    MemoryRoleStore,
    StaticGeocoder,
)
from storefront.adapters.openroute import OpenRouteGeocoder
from storefront.adapters.sqlalchemy import (
    SQLAlchemyCatalog,
    SQLAlchemyOrderStore,
    SQLAlchemyProfileStore,
    SQLAlchemyRoleStore,
    create_database,
)
from storefront.cart import Cart, MemoryCartStorage
from storefront.checkout import (
    Address,
    CheckoutDraft,
    Contact,
    DeliveryMethod,
    PaymentMethod,
    blocked_message,
)
from storefront.checkout._messages import DEFAULT_LANGUAGE
from storefront.config import AppSettings
from storefront.fee import FeeCalculator, FeeQuote
from storefront.identity import GuestIdentityResolver, Session
from storefront.log import setup_logging
from storefront.orders import (
    CheckoutError,
    ErrorCode,
    LineRequest,
    OrderAdmin,
    OrderMaterializer,
    OrderQuery,
    OrderRecord,
    OrderStatus,
    Role,
    Submission,
    SubmissionGuard,
    price_lines,
)
from storefront.ports import (
    Geocoder,
    IdentityProvider,
    OrderStore,
    PaymentGateway,
    ProductCatalog,
    ProfileStore,
    RoleStore,
)

logger = logging.getLogger(__name__)

STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.FEE_BLOCKED: 422,
    ErrorCode.FEE_PENDING: 422,
    ErrorCode.EMPTY_CART: 422,
    ErrorCode.INVALID_DRAFT: 422,
    ErrorCode.UNKNOWN_PRODUCT: 422,
    ErrorCode.DUPLICATE_SUBMISSION: 409,
    ErrorCode.SUBMISSION_IN_FLIGHT: 409,
    ErrorCode.ILLEGAL_TRANSITION: 409,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.PAYMENT_INTENT_FAILED: 502,
    ErrorCode.PAYMENT_CHECK_FAILED: 502,
    ErrorCode.IDENTITY_FAILED: 502,
    ErrorCode.ORDER_INSERT_FAILED: 503,
    ErrorCode.STORE_ERROR: 503,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Container
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Storefront:
    """Collaborators shared by every request."""

    settings: AppSettings
    geocoder: Geocoder
    catalog: ProductCatalog
    orders: OrderStore
    identity: IdentityProvider
    profiles: ProfileStore
    roles: RoleStore
    payments: PaymentGateway | None = None
    guard: SubmissionGuard[Submission] = field(default_factory=SubmissionGuard)
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.calculator = FeeCalculator(self.geocoder, self.settings.store.fee_table)
        self.resolver = GuestIdentityResolver(self.identity, self.profiles)
        self.admin = OrderAdmin(self.orders, self.roles, self.payments)

    @classmethod
    def in_memory(
        cls, settings: AppSettings | None = None, geocoder: Geocoder | None = None
    ) -> "Storefront":
        return cls(
            settings=settings if settings is not None else AppSettings(),
            geocoder=geocoder if geocoder is not None else StaticGeocoder(),
            catalog=MemoryCatalog(),
            orders=MemoryOrderStore(),
            identity=MemoryIdentityProvider(),
            profiles=MemoryProfileStore(),
            roles=MemoryRoleStore(),
            payments=MemoryPaymentGateway(),
        )

    @classmethod
    async def from_settings(
        cls,
        settings: AppSettings,
        *,
        identity: IdentityProvider | None = None,
        payments: PaymentGateway | None = None,
    ) -> "Storefront":
        """
        Production wiring: logging, SQLAlchemy stores and the geocoder.

        Call aclose() when done; it disposes the engine and closes the
        geocoder's HTTP session.
        """
        setup_logging(settings.log_level)
        session_factory, engine = await create_database(settings.database_url)
        closers: list[Callable[[], Awaitable[None]]] = [engine.dispose]

        geocoder: Geocoder
        if settings.openroute_api_key:
            ors = OpenRouteGeocoder(settings.openroute_api_key)
            closers.append(ors.close)
            geocoder = ors
        else:
            logger.warning("No OpenRouteService key configured, delivery addresses will not resolve")
            geocoder = StaticGeocoder()

        if identity is None:
            logger.warning("No identity provider configured, guest accounts live in memory")
            identity = MemoryIdentityProvider()

        logger.info("Storefront wired against %s", engine.url.render_as_string(hide_password=True))
        return cls(
            settings=settings,
            geocoder=geocoder,
            catalog=SQLAlchemyCatalog(session_factory),
            orders=SQLAlchemyOrderStore(session_factory),
            identity=identity,
            profiles=SQLAlchemyProfileStore(session_factory),
            roles=SQLAlchemyRoleStore(session_factory),
            payments=payments,
            closers=closers,
        )

    async def aclose(self) -> None:
        while self.closers:
            await self.closers.pop()()

    def materializer(self, cart: Cart) -> OrderMaterializer:
        return OrderMaterializer(
            cart,
            self.settings.store,
            self.orders,
            self.resolver,
            self.payments,
            guard=self.guard,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Wire Models
# ═══════════════════════════════════════════════════════════════════════════════


class AddressIn(BaseModel):
    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    postal_code: str = ""
    state: str = ""
    complement: str = ""

    def to_domain(self) -> Address:
        return Address(**self.model_dump())


class FeeQuoteIn(BaseModel):
    delivery_method: DeliveryMethod
    address: AddressIn = Field(default_factory=AddressIn)


class FeeQuoteOut(BaseModel):
    fee: Decimal | None
    distance_km: float | None
    blocked_reason: str | None
    message: str | None = None

    @classmethod
    def from_domain(cls, dom: FeeQuote, message: str | None = None) -> "FeeQuoteOut":
        return cls(
            fee=dom.fee,
            distance_km=round(dom.distance_km, 3) if dom.distance_km is not None else None,
            blocked_reason=dom.blocked_reason.value if dom.blocked_reason else None,
            message=message,
        )


class CartLineIn(BaseModel):
    """Prices and names are not accepted here; they come from the catalog."""

    product_id: str
    quantity: int = Field(ge=1)
    selected_options: dict[str, list[str]] = Field(default_factory=dict)

    def to_domain(self) -> LineRequest:
        return LineRequest(self.product_id, self.quantity, self.selected_options)


class CheckoutIn(BaseModel):
    draft_id: str = Field(min_length=1)
    name: str
    email: str
    phone: str
    delivery_method: DeliveryMethod = DeliveryMethod.DELIVERY
    address: AddressIn = Field(default_factory=AddressIn)
    payment_method: PaymentMethod
    notes: str = ""
    change_for: Decimal | None = None
    items: list[CartLineIn]

    def to_domain(self) -> CheckoutDraft:
        return CheckoutDraft(
            contact=Contact(self.name, self.email, self.phone),
            delivery_method=self.delivery_method,
            address=self.address.to_domain(),
            payment_method=self.payment_method,
            notes=self.notes,
            change_for=self.change_for,
            draft_id=self.draft_id,
        )


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    selected_options: dict[str, list[str]]


class OrderOut(BaseModel):
    id: str
    owner_account_id: str
    items: list[OrderItemOut]
    address: dict[str, Any]
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    payment_reference: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, dom: OrderRecord) -> "OrderOut":
        return cls(
            id=dom.id,
            owner_account_id=dom.owner_account_id,
            items=[OrderItemOut(**item.to_dict()) for item in dom.items],
            address=dom.address.to_dict(),
            subtotal=dom.subtotal,
            delivery_fee=dom.delivery_fee,
            total=dom.total,
            status=dom.status,
            payment_reference=dom.payment_reference,
            created_at=dom.created_at,
            updated_at=dom.updated_at,
        )


class CheckoutOut(BaseModel):
    order: OrderOut
    redirect_url: str | None

    @classmethod
    def from_domain(cls, dom: Submission) -> "CheckoutOut":
        return cls(order=OrderOut.from_domain(dom.order), redirect_url=dom.redirect_url)


class StatusIn(BaseModel):
    status: OrderStatus


class ErrorOut(BaseModel):
    code: str
    message: str
    details: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, dom: CheckoutError) -> "ErrorOut":
        return cls(code=dom.code, message=dom.message, details=dom.details)


def error_response(e: CheckoutError) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_CODE.get(e.code, 400),
        content=ErrorOut.from_domain(e).model_dump(mode="json"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════════════════════


def get_storefront(request: Request) -> Storefront:
    return request.app.state.storefront


def get_session(
    x_account_id: Annotated[str | None, Header()] = None,
    x_account_email: Annotated[str | None, Header()] = None,
) -> Session | None:
    if not x_account_id:
        return None
    return Session(account_id=x_account_id, email=x_account_email or "")


StorefrontDep = Annotated[Storefront, Depends(get_storefront)]
SessionDep = Annotated[Session | None, Depends(get_session)]


# ═══════════════════════════════════════════════════════════════════════════════
# App
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(
    storefront: Storefront | None = None, settings: AppSettings | None = None
) -> FastAPI:
    """
    Serve ``storefront`` as given, or build one from ``settings`` (the
    environment when omitted) on startup and close it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if storefront is not None:
            yield
            return
        built = await Storefront.from_settings(
            settings if settings is not None else AppSettings.from_env()
        )
        app.state.storefront = built
        try:
            yield
        finally:
            await built.aclose()
            logger.info("Storefront closed")

    app = FastAPI(title="storefront", lifespan=lifespan)
    if storefront is not None:
        app.state.storefront = storefront

    @app.post("/fee-quote", response_model=FeeQuoteOut)
    async def fee_quote(
        body: FeeQuoteIn,
        store: StorefrontDep,
        accept_language: Annotated[str | None, Header()] = None,
    ) -> FeeQuoteOut:
        address = body.address.to_domain()
        quote = await store.calculator.compute_fee(
            body.delivery_method, address, store.settings.store.origin
        )
        draft = CheckoutDraft(delivery_method=body.delivery_method, address=address)
        language = (accept_language or store.settings.language or DEFAULT_LANGUAGE)[:2]
        return FeeQuoteOut.from_domain(quote, blocked_message(draft, quote, language))

    @app.post("/checkout", status_code=201, response_model=CheckoutOut)
    async def checkout(body: CheckoutIn, store: StorefrontDep, session: SessionDep) -> Any:
        draft = body.to_domain()
        match await price_lines(store.catalog, [line.to_domain() for line in body.items]):
            case Error(e):
                return error_response(e)
            case Ok(items):
                cart = Cart(MemoryCartStorage())
                for item in items:
                    cart.add(item)
        # The quote is always recomputed server-side.
        quote = await store.calculator.compute_fee(
            draft.delivery_method, draft.address, store.settings.store.origin
        )
        match await store.materializer(cart).submit(draft, quote, session):
            case Ok(submission):
                return CheckoutOut.from_domain(submission)
            case Error(e):
                return error_response(e)

    @app.get("/orders", response_model=list[OrderOut])
    async def list_orders(
        store: StorefrontDep,
        session: SessionDep,
        status: OrderStatus | None = None,
    ) -> Any:
        if session is None:
            return error_response(CheckoutError(ErrorCode.FORBIDDEN, "Sign in to see orders"))
        is_admin = await store.roles.has_role(session.account_id, Role.ADMIN)
        query = OrderQuery(
            owner_account_id=None if is_admin else session.account_id,
            statuses=(status,) if status is not None else (),
        )
        match await store.admin.list_orders(query):
            case Ok(orders):
                return [OrderOut.from_domain(o) for o in orders]
            case Error(e):
                return error_response(e)

    @app.patch("/orders/{order_id}/status", response_model=OrderOut)
    async def update_status(
        order_id: str, body: StatusIn, store: StorefrontDep, session: SessionDep
    ) -> Any:
        if session is None:
            return error_response(CheckoutError(ErrorCode.FORBIDDEN, "Sign in to change orders"))
        match await store.admin.update_status(session.account_id, order_id, body.status):
            case Ok(order):
                return OrderOut.from_domain(order)
            case Error(e):
                return error_response(e)

    @app.post("/orders/{order_id}/reconcile-payment", response_model=OrderOut)
    async def reconcile_payment(order_id: str, store: StorefrontDep, session: SessionDep) -> Any:
        if session is None or not await store.roles.has_role(session.account_id, Role.ADMIN):
            return error_response(
                CheckoutError(ErrorCode.FORBIDDEN, "Only administrators can reconcile payments")
            )
        match await store.admin.reconcile_payment(order_id):
            case Ok(order):
                return OrderOut.from_domain(order)
            case Error(e):
                return error_response(e)

    return app


__all__ = (
    "STATUS_BY_CODE",
    "Storefront",
    "AddressIn",
    "FeeQuoteIn",
    "FeeQuoteOut",
    "CartLineIn",
    "CheckoutIn",
    "OrderItemOut",
    "OrderOut",
    "CheckoutOut",
    "StatusIn",
    "ErrorOut",
    "error_response",
    "create_app",
)
