"""
SQLAlchemy adapters — async stores for orders, profiles, roles and products.

Money is stored as integer cents; timestamps as naive UTC.

Example:
    session_factory, engine = await create_database("sqlite+aiosqlite:///store.db")
    orders = SQLAlchemyOrderStore(session_factory)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from storefront._types import CENT, AccountId, OrderId, money
from storefront.cart._types import Product
from storefront.identity._types import ProfileRecord
from storefront.orders._types import (
    NewOrder,
    OrderAddress,
    OrderItem,
    OrderQuery,
    OrderRecord,
    OrderStatus,
    Role,
)


def to_cents(amount: Decimal) -> int:
    return int(money(amount) / CENT)


def from_cents(cents: int) -> Decimal:
    return money(Decimal(cents) * CENT)


def _to_db(at: datetime) -> datetime:
    if at.tzinfo is None:
        return at
    return at.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(at: datetime) -> datetime:
    return at.replace(tzinfo=timezone.utc) if at.tzinfo is None else at


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_account_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Payload
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    @classmethod
    def from_new(cls, order: NewOrder, at: datetime) -> OrderTable:
        return cls(
            id=str(uuid.uuid4()),
            owner_account_id=order.owner_account_id,
            items=[item.to_dict() for item in order.items],
            address=order.address.to_dict(),
            subtotal_cents=to_cents(order.subtotal),
            delivery_fee_cents=to_cents(order.delivery_fee),
            total_cents=to_cents(order.total),
            status=str(order.status),
            payment_reference=order.payment_reference,
            created_at=_to_db(at),
            updated_at=_to_db(at),
        )

    def to_record(self) -> OrderRecord:
        return OrderRecord(
            id=self.id,
            owner_account_id=self.owner_account_id,
            items=tuple(OrderItem.from_dict(item) for item in self.items),
            address=OrderAddress.from_dict(self.address),
            subtotal=from_cents(self.subtotal_cents),
            delivery_fee=from_cents(self.delivery_fee_cents),
            total=from_cents(self.total_cents),
            status=OrderStatus(self.status),
            created_at=_from_db(self.created_at),
            updated_at=_from_db(self.updated_at),
            payment_reference=self.payment_reference,
        )


class ProfileTable(Base):
    __tablename__ = "profiles"

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    technical_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_was_corrected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def to_record(self) -> ProfileRecord:
        return ProfileRecord(
            account_id=self.account_id,
            name=self.name,
            phone=self.phone,
            email=self.email,
            address=dict(self.address or {}),
            technical_email=self.technical_email,
            email_was_corrected=self.email_was_corrected,
        )


class ProductTable(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # {"Size": {"L": 800}}
    options: Mapped[dict[str, dict[str, int]]] = mapped_column(JSON, nullable=False, default=dict)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @classmethod
    def from_product(cls, product: Product) -> ProductTable:
        return cls(
            id=product.id,
            name=product.name,
            price_cents=to_cents(product.price),
            options={
                label: {choice: to_cents(amount) for choice, amount in variations.items()}
                for label, variations in product.options.items()
            },
            available=product.available,
        )

    def to_product(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            price=from_cents(self.price_cents),
            options={
                label: {choice: from_cents(cents) for choice, cents in variations.items()}
                for label, variations in (self.options or {}).items()
            },
            available=self.available,
        )


class RoleTable(Base):
    __tablename__ = "user_roles"

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(20), primary_key=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Stores
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyCatalog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, product_id: str) -> Product | None:
        async with self._session_factory() as session:
            row = await session.get(ProductTable, product_id)
            return row.to_product() if row is not None else None

    async def put(self, product: Product) -> None:
        async with self._session_factory() as session:
            await session.merge(ProductTable.from_product(product))
            await session.commit()


class SQLAlchemyOrderStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, order: NewOrder) -> OrderRecord:
        row = OrderTable.from_new(order, datetime.now(timezone.utc))
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            return row.to_record()

    async def get(self, order_id: OrderId) -> OrderRecord | None:
        async with self._session_factory() as session:
            row = await session.get(OrderTable, order_id)
            return row.to_record() if row is not None else None

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, at: datetime
    ) -> OrderRecord | None:
        async with self._session_factory() as session:
            row = await session.get(OrderTable, order_id)
            if row is None:
                return None
            row.status = str(status)
            row.updated_at = _to_db(at)
            await session.commit()
            return row.to_record()

    async def query(self, query: OrderQuery) -> list[OrderRecord]:
        stmt = select(OrderTable)
        if query.owner_account_id is not None:
            stmt = stmt.where(OrderTable.owner_account_id == query.owner_account_id)
        if query.statuses:
            stmt = stmt.where(OrderTable.status.in_([str(s) for s in query.statuses]))
        if query.created_from is not None:
            stmt = stmt.where(OrderTable.created_at >= _to_db(query.created_from))
        if query.created_to is not None:
            stmt = stmt.where(OrderTable.created_at <= _to_db(query.created_to))
        stmt = stmt.order_by(OrderTable.created_at.desc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        async with self._session_factory() as session:
            rows = await session.scalars(stmt)
            return [row.to_record() for row in rows]


class SQLAlchemyProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert(self, profile: ProfileRecord) -> None:
        async with self._session_factory() as session:
            await session.merge(
                ProfileTable(
                    account_id=profile.account_id,
                    name=profile.name,
                    phone=profile.phone,
                    email=profile.email,
                    address=dict(profile.address),
                    technical_email=profile.technical_email,
                    email_was_corrected=profile.email_was_corrected,
                    updated_at=_to_db(datetime.now(timezone.utc)),
                )
            )
            await session.commit()

    async def get(self, account_id: AccountId) -> ProfileRecord | None:
        async with self._session_factory() as session:
            row = await session.get(ProfileTable, account_id)
            return row.to_record() if row is not None else None


class SQLAlchemyRoleStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def has_role(self, account_id: AccountId, role: Role) -> bool:
        async with self._session_factory() as session:
            row = await session.get(RoleTable, (account_id, str(role)))
            return row is not None

    async def assign(self, account_id: AccountId, role: Role) -> None:
        async with self._session_factory() as session:
            await session.merge(RoleTable(account_id=account_id, role=str(role)))
            await session.commit()


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    echo: bool = False,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "to_cents",
    "from_cents",
    "Base",
    "OrderTable",
    "ProfileTable",
    "RoleTable",
    "ProductTable",
    "SQLAlchemyOrderStore",
    "SQLAlchemyProfileStore",
    "SQLAlchemyRoleStore",
    "SQLAlchemyCatalog",
    "create_database",
)
