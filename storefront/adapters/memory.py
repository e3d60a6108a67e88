"""
In-memory adapters — every port, held in dicts.

Each adapter records its calls and has a failure switch so tests can
drive the error paths.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from storefront._types import AccountId, OrderId
from storefront.cart._types import Product
from storefront.fee._types import Coordinates
from storefront.identity._types import IdentityError, ProfileRecord, Session, SignUpResult
from storefront.orders._types import (
    NewOrder,
    OrderQuery,
    OrderRecord,
    OrderStatus,
    PaymentIntent,
    PaymentStatus,
    Role,
)


class AdapterError(Exception):
    """Simulated collaborator outage."""


# ═══════════════════════════════════════════════════════════════════════════════
# Geocoder
# ═══════════════════════════════════════════════════════════════════════════════


class StaticGeocoder:
    """
    Fixed address → point table.

    Example:
        geocoder = StaticGeocoder({"Rua A, 12, Centro, Campinas, 13010-000": Coordinates(-22.9, -47.06)})
    """

    def __init__(
        self,
        points: dict[str, Coordinates] | None = None,
        default: Coordinates | None = None,
        delay: float = 0.0,
    ) -> None:
        self.points = dict(points or {})
        self.default = default
        self.delay = delay
        self.fail = False
        self.calls: list[str] = []

    async def geocode(self, text: str) -> Coordinates | None:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise AdapterError("geocoder unavailable")
        return self.points.get(text, self.default)


# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryIdentityProvider:
    """
    Accounts keyed by email.

    Duplicate emails and anything in ``rejected`` are refused, like a hosted
    auth provider would. ``confirm_email`` keeps new sessions inactive.
    """

    def __init__(self, *, confirm_email: bool = False, delay: float = 0.0) -> None:
        self.confirm_email = confirm_email
        self.delay = delay
        self.rejected: set[str] = set()
        self.fail = False
        self.accounts: dict[str, tuple[AccountId, str, dict[str, Any]]] = {}
        self.sign_up_calls: list[str] = []
        self._session: Session | None = None

    async def sign_up(
        self, email: str, password: str, attrs: dict[str, Any]
    ) -> SignUpResult:
        self.sign_up_calls.append(email)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise AdapterError("identity provider unavailable")
        key = email.casefold()
        if key in self.rejected:
            raise IdentityError(f"email {email} rejected", code="invalid_email")
        if key in self.accounts:
            raise IdentityError(f"email {email} already registered", code="user_exists")

        account_id = str(uuid.uuid4())
        self.accounts[key] = (account_id, password, dict(attrs))
        active = not self.confirm_email
        if active:
            self._session = Session(account_id, email)
        return SignUpResult(account_id=account_id, session_active=active)

    async def sign_in(self, email: str, password: str) -> Session:
        entry = self.accounts.get(email.casefold())
        if entry is None or entry[1] != password:
            raise IdentityError("invalid credentials", code="invalid_credentials")
        self._session = Session(entry[0], email)
        return self._session

    async def get_session(self) -> Session | None:
        return self._session

    async def sign_out(self) -> None:
        self._session = None


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryCatalog:
    def __init__(self, products: tuple[Product, ...] = ()) -> None:
        self.products: dict[str, Product] = {p.id: p for p in products}
        self.fail = False

    def put(self, product: Product) -> None:
        self.products[product.id] = product

    async def get(self, product_id: str) -> Product | None:
        if self.fail:
            raise AdapterError("catalog unavailable")
        return self.products.get(product_id)


# ═══════════════════════════════════════════════════════════════════════════════
# Profiles & Roles
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryProfileStore:
    def __init__(self) -> None:
        self.profiles: dict[AccountId, ProfileRecord] = {}
        self.fail = False

    async def upsert(self, profile: ProfileRecord) -> None:
        if self.fail:
            raise AdapterError("profile store unavailable")
        self.profiles[profile.account_id] = profile

    async def get(self, account_id: AccountId) -> ProfileRecord | None:
        return self.profiles.get(account_id)


class MemoryRoleStore:
    def __init__(self) -> None:
        self.roles: dict[AccountId, set[Role]] = {}

    async def has_role(self, account_id: AccountId, role: Role) -> bool:
        return role in self.roles.get(account_id, set())

    async def assign(self, account_id: AccountId, role: Role) -> None:
        self.roles.setdefault(account_id, set()).add(role)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryOrderStore:
    def __init__(self) -> None:
        self.orders: dict[OrderId, OrderRecord] = {}
        self.fail = False
        self.insert_calls = 0

    async def insert(self, order: NewOrder) -> OrderRecord:
        self.insert_calls += 1
        if self.fail:
            raise AdapterError("order store unavailable")
        now = datetime.now(timezone.utc)
        record = OrderRecord(
            id=str(uuid.uuid4()),
            owner_account_id=order.owner_account_id,
            items=order.items,
            address=order.address,
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee,
            total=order.total,
            status=order.status,
            created_at=now,
            updated_at=now,
            payment_reference=order.payment_reference,
        )
        self.orders[record.id] = record
        return record

    async def get(self, order_id: OrderId) -> OrderRecord | None:
        return self.orders.get(order_id)

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, at: datetime
    ) -> OrderRecord | None:
        current = self.orders.get(order_id)
        if current is None:
            return None
        updated = replace(current, status=status, updated_at=at)
        self.orders[order_id] = updated
        return updated

    async def query(self, query: OrderQuery) -> list[OrderRecord]:
        found = sorted(
            (o for o in self.orders.values() if query.matches(o)),
            key=lambda o: o.created_at,
            reverse=True,
        )
        return found[: query.limit] if query.limit is not None else found


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryPaymentGateway:
    """
    Hosted-checkout stand-in.

    Intents start as pending; tests move them with settle().
    """

    def __init__(self, base_url: str = "https://pay.example.test/checkout") -> None:
        self.base_url = base_url
        self.fail = False
        self.intents: dict[str, tuple[Decimal, str, dict[str, str]]] = {}
        self.statuses: dict[str, PaymentStatus] = {}

    async def create_intent(
        self, amount: Decimal, currency: str, metadata: dict[str, str]
    ) -> PaymentIntent:
        if self.fail:
            raise AdapterError("payment provider unavailable")
        intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        self.intents[intent_id] = (amount, currency, dict(metadata))
        self.statuses[intent_id] = PaymentStatus.PENDING
        return PaymentIntent(intent_id=intent_id, redirect_url=f"{self.base_url}/{intent_id}")

    async def check_status(self, intent_id: str) -> str:
        if intent_id not in self.statuses:
            raise AdapterError(f"unknown intent {intent_id}")
        return self.statuses[intent_id]

    def settle(self, intent_id: str, status: PaymentStatus) -> None:
        self.statuses[intent_id] = status


__all__ = (
    "AdapterError",
    "StaticGeocoder",
    "MemoryIdentityProvider",
    "MemoryCatalog",
    "MemoryProfileStore",
    "MemoryRoleStore",
    "MemoryOrderStore",
    "MemoryPaymentGateway",
)
