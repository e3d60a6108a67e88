"""
Ports — collaborator protocols the checkout core depends on.

Implementations live in storefront.adapters (memory, sqlalchemy, openroute).
Every method is async; failures are raised and lifted into Result values by
the callers.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from storefront._types import AccountId, OrderId
    from storefront.cart._types import Product
    from storefront.fee._types import Coordinates
    from storefront.identity._types import ProfileRecord, Session, SignUpResult
    from storefront.orders._types import (
        NewOrder,
        OrderQuery,
        OrderRecord,
        OrderStatus,
        PaymentIntent,
        Role,
    )


class Geocoder(Protocol):
    async def geocode(self, text: str) -> Coordinates | None:
        """Point for an address text, or None when not found."""
        ...


class IdentityProvider(Protocol):
    """
    Authentication collaborator.

    Note: sign_up() does not guarantee an active session; providers with
    email confirmation return session_active=False.
    """

    async def sign_up(
        self, email: str, password: str, attrs: dict[str, Any]
    ) -> SignUpResult: ...

    async def sign_in(self, email: str, password: str) -> Session: ...

    async def get_session(self) -> Session | None: ...

    async def sign_out(self) -> None: ...


class ProductCatalog(Protocol):
    async def get(self, product_id: str) -> Product | None:
        """Current menu entry, or None when the product does not exist."""
        ...


class ProfileStore(Protocol):
    async def upsert(self, profile: ProfileRecord) -> None: ...

    async def get(self, account_id: AccountId) -> ProfileRecord | None: ...


class OrderStore(Protocol):
    async def insert(self, order: NewOrder) -> OrderRecord: ...

    async def get(self, order_id: OrderId) -> OrderRecord | None: ...

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, at: datetime
    ) -> OrderRecord | None:
        """Returns the updated record, or None when the id is unknown."""
        ...

    async def query(self, query: OrderQuery) -> list[OrderRecord]:
        """Matching orders, newest first."""
        ...


class PaymentGateway(Protocol):
    async def create_intent(
        self, amount: Decimal, currency: str, metadata: dict[str, str]
    ) -> PaymentIntent: ...

    async def check_status(self, intent_id: str) -> str: ...


class RoleStore(Protocol):
    async def has_role(self, account_id: AccountId, role: Role) -> bool: ...

    async def assign(self, account_id: AccountId, role: Role) -> None: ...


__all__ = (
    "Geocoder",
    "IdentityProvider",
    "ProductCatalog",
    "ProfileStore",
    "OrderStore",
    "PaymentGateway",
    "RoleStore",
)
