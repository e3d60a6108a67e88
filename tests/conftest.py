"""
Shared fixtures.

Store origin sits at (0, 0); moving 0.027° north is ~3.0 km, 0.108° is
~12.0 km, which puts the default geocoder point in the 6.00 band.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.adapters.memory import (
    MemoryIdentityProvider,
    MemoryOrderStore,
    MemoryPaymentGateway,
    MemoryProfileStore,
    MemoryRoleStore,
    StaticGeocoder,
)
from storefront.cart import Cart, CartItem, MemoryCartStorage
from storefront.checkout import Address, CheckoutDraft, Contact, DeliveryMethod, PaymentMethod, StoreSettings
from storefront.fee import Coordinates, FeeCalculator, FeeQuote
from storefront.identity import GuestIdentityResolver
from storefront.orders import OrderMaterializer

ORIGIN = Coordinates(0.0, 0.0)
THREE_KM = Coordinates(0.027, 0.0)
TWELVE_KM = Coordinates(0.108, 0.0)


@pytest.fixture
def settings() -> StoreSettings:
    return StoreSettings().with_origin(ORIGIN.lat, ORIGIN.lng)


@pytest.fixture
def address() -> Address:
    return Address(
        street="Rua das Flores",
        number="12",
        neighborhood="Centro",
        city="Campinas",
        postal_code="13010-000",
        state="SP",
    )


@pytest.fixture
def six(address: Address) -> FeeQuote:
    """The 6.00 quote the default geocoder point yields for ``address``."""
    return FeeQuote.priced(Decimal("6.00"), 3.0, address_key=address.quote_key)


@pytest.fixture
def draft(address: Address) -> CheckoutDraft:
    return CheckoutDraft(
        contact=Contact(name="Ana Souza", email="ana@example.com", phone="19999990000"),
        delivery_method=DeliveryMethod.DELIVERY,
        address=address,
        payment_method=PaymentMethod.PIX,
    )


@pytest.fixture
def geocoder() -> StaticGeocoder:
    return StaticGeocoder(default=THREE_KM)


@pytest.fixture
def calculator(geocoder: StaticGeocoder) -> FeeCalculator:
    return FeeCalculator(geocoder)


@pytest.fixture
def cart_storage() -> MemoryCartStorage:
    return MemoryCartStorage()


@pytest.fixture
def cart(cart_storage: MemoryCartStorage) -> Cart:
    cart = Cart(cart_storage)
    cart.add(CartItem.of("burger", "X-Burger", 7.99, quantity=2))
    return cart


@pytest.fixture
def identity() -> MemoryIdentityProvider:
    return MemoryIdentityProvider()


@pytest.fixture
def profiles() -> MemoryProfileStore:
    return MemoryProfileStore()


@pytest.fixture
def orders() -> MemoryOrderStore:
    return MemoryOrderStore()


@pytest.fixture
def payments() -> MemoryPaymentGateway:
    return MemoryPaymentGateway()


@pytest.fixture
def roles() -> MemoryRoleStore:
    return MemoryRoleStore()


@pytest.fixture
def resolver(identity: MemoryIdentityProvider, profiles: MemoryProfileStore) -> GuestIdentityResolver:
    return GuestIdentityResolver(identity, profiles)


@pytest.fixture
def materializer(
    cart: Cart,
    settings: StoreSettings,
    orders: MemoryOrderStore,
    resolver: GuestIdentityResolver,
    payments: MemoryPaymentGateway,
) -> OrderMaterializer:
    return OrderMaterializer(cart, settings, orders, resolver, payments)
