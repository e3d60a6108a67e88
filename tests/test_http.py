"""
Tests — HTTP Surface
======================
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.adapters.memory import StaticGeocoder
from storefront.adapters.openroute import OpenRouteGeocoder
from storefront.adapters.sqlalchemy import (
    SQLAlchemyCatalog,
    SQLAlchemyOrderStore,
    create_database,
)
from storefront.cart import Product
from storefront.checkout import StoreSettings
from storefront.config import AppSettings
from storefront.fee import Coordinates
from storefront.http import Storefront, create_app
from storefront.orders import PaymentStatus, Role

THREE_KM = Coordinates(0.027, 0.0)
TWELVE_KM = Coordinates(0.108, 0.0)

BURGER = Product("burger", "X-Burger", Decimal("7.99"))
PIZZA = Product(
    "pizza",
    "Margherita",
    Decimal("39.90"),
    options={"Size": {"M": Decimal("0.00"), "L": Decimal("8.00")}},
)

ADDRESS = {
    "street": "Rua das Flores",
    "number": "12",
    "neighborhood": "Centro",
    "city": "Campinas",
    "postal_code": "13010-000",
}


def checkout_body(**changes) -> dict:
    body = {
        "draft_id": uuid.uuid4().hex,
        "name": "Ana Souza",
        "email": "ana@example.com",
        "phone": "19999990000",
        "delivery_method": "delivery",
        "address": ADDRESS,
        "payment_method": "pix",
        "items": [
            {"product_id": "burger", "quantity": 2},
        ],
    }
    body.update(changes)
    return body


@pytest.fixture
def storefront() -> Storefront:
    settings = AppSettings(store=StoreSettings().with_origin(0.0, 0.0).with_redirect_payments())
    storefront = Storefront.in_memory(settings, StaticGeocoder(default=THREE_KM))
    storefront.catalog.put(BURGER)
    storefront.catalog.put(PIZZA)
    return storefront


@pytest.fixture
def client(storefront: Storefront) -> TestClient:
    return TestClient(create_app(storefront))


# ── Fee Quote Tests ───────────────────────────────────────────


class TestFeeQuoteEndpoint:
    def test_priced(self, client):
        response = client.post("/fee-quote", json={"delivery_method": "delivery", "address": ADDRESS})
        assert response.status_code == 200
        data = response.json()
        assert data["fee"] == "6.00"
        assert data["blocked_reason"] is None
        assert data["message"] is None

    def test_pickup(self, client):
        response = client.post("/fee-quote", json={"delivery_method": "pickup"})
        assert response.json()["fee"] == "0.00"

    def test_outside_area_in_portuguese(self, storefront, client):
        storefront.geocoder.default = TWELVE_KM
        response = client.post(
            "/fee-quote",
            json={"delivery_method": "delivery", "address": ADDRESS},
            headers={"Accept-Language": "pt-BR"},
        )
        data = response.json()
        assert data["fee"] is None
        assert data["blocked_reason"] == "outside_area"
        assert data["message"] == "Endereço fora da área de entrega"


# ── Checkout Tests ────────────────────────────────────────────


class TestCheckoutEndpoint:
    def test_guest_checkout(self, client):
        response = client.post("/checkout", json=checkout_body())
        assert response.status_code == 201
        order = response.json()["order"]
        assert order["total"] == "21.98"
        assert order["status"] == "pending"
        assert response.json()["redirect_url"] is None

    def test_redirect_checkout(self, client):
        response = client.post("/checkout", json=checkout_body(payment_method="external_redirect"))
        assert response.status_code == 201
        assert response.json()["order"]["status"] == "awaiting_payment"
        assert response.json()["redirect_url"].startswith("https://")

    def test_outside_area_rejected(self, storefront, client):
        storefront.geocoder.default = TWELVE_KM
        response = client.post("/checkout", json=checkout_body())
        assert response.status_code == 422
        assert response.json()["code"] == "FEE_BLOCKED"
        assert storefront.orders.insert_calls == 0

    def test_invalid_draft_details(self, client):
        response = client.post("/checkout", json=checkout_body(email="nope"))
        assert response.status_code == 422
        assert "email" in response.json()["details"]

    def test_signed_in_customer(self, client):
        response = client.post(
            "/checkout", json=checkout_body(), headers={"X-Account-Id": "acc-7"}
        )
        assert response.json()["order"]["owner_account_id"] == "acc-7"

    def test_replay_for_same_account(self, client):
        body = checkout_body()
        first = client.post("/checkout", json=body, headers={"X-Account-Id": "acc-7"})
        again = client.post("/checkout", json=body, headers={"X-Account-Id": "acc-7"})
        assert again.status_code == 201
        assert again.json()["order"]["id"] == first.json()["order"]["id"]

    def test_replay_refused_for_other_account(self, storefront, client):
        body = checkout_body()
        client.post("/checkout", json=body, headers={"X-Account-Id": "acc-7"})
        response = client.post("/checkout", json=body, headers={"X-Account-Id": "acc-8"})
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_SUBMISSION"
        assert "acc-7" not in response.text
        assert storefront.orders.insert_calls == 1


# ── Catalog Pricing Tests ─────────────────────────────────────


class TestCatalogPricing:
    def test_client_price_ignored(self, client):
        body = checkout_body(
            items=[
                {"product_id": "burger", "name": "Free", "unit_price": "0.00", "quantity": 2},
            ]
        )
        response = client.post("/checkout", json=body)
        assert response.status_code == 201
        order = response.json()["order"]
        assert order["items"][0]["unit_price"] == "7.99"
        assert order["items"][0]["name"] == "X-Burger"
        assert order["subtotal"] == "15.98"
        assert order["total"] == "21.98"

    def test_option_surcharge(self, client):
        body = checkout_body(
            items=[{"product_id": "pizza", "quantity": 1, "selected_options": {"Size": ["L"]}}]
        )
        response = client.post("/checkout", json=body)
        assert response.status_code == 201
        assert response.json()["order"]["items"][0]["unit_price"] == "47.90"
        assert response.json()["order"]["total"] == "53.90"

    def test_unknown_product(self, storefront, client):
        body = checkout_body(items=[{"product_id": "caviar", "quantity": 1}])
        response = client.post("/checkout", json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "UNKNOWN_PRODUCT"
        assert response.json()["details"] == {"caviar": "not available"}
        assert storefront.orders.insert_calls == 0

    def test_unknown_option(self, client):
        body = checkout_body(
            items=[{"product_id": "pizza", "quantity": 1, "selected_options": {"Size": ["XXL"]}}]
        )
        response = client.post("/checkout", json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "UNKNOWN_PRODUCT"

    def test_unavailable_product(self, storefront, client):
        storefront.catalog.put(Product("soup", "Soup", Decimal("12.00"), available=False))
        body = checkout_body(items=[{"product_id": "soup", "quantity": 1}])
        assert client.post("/checkout", json=body).json()["code"] == "UNKNOWN_PRODUCT"

    def test_catalog_outage(self, storefront, client):
        storefront.catalog.fail = True
        response = client.post("/checkout", json=checkout_body())
        assert response.status_code == 503
        assert response.json()["code"] == "STORE_ERROR"

    def test_negative_quantity_rejected_by_schema(self, client):
        body = checkout_body(items=[{"product_id": "burger", "quantity": 0}])
        assert client.post("/checkout", json=body).status_code == 422


# ── Orders Tests ──────────────────────────────────────────────


class TestOrdersEndpoints:
    def test_customer_sees_own_orders(self, client):
        client.post("/checkout", json=checkout_body(), headers={"X-Account-Id": "acc-7"})
        client.post("/checkout", json=checkout_body(), headers={"X-Account-Id": "acc-8"})
        response = client.get("/orders", headers={"X-Account-Id": "acc-7"})
        assert [o["owner_account_id"] for o in response.json()] == ["acc-7"]

    def test_anonymous_forbidden(self, client):
        assert client.get("/orders").status_code == 403

    def test_admin_status_flow(self, storefront, client):
        asyncio.run(storefront.roles.assign("staff", Role.ADMIN))
        order_id = client.post("/checkout", json=checkout_body()).json()["order"]["id"]

        assert len(client.get("/orders", headers={"X-Account-Id": "staff"}).json()) == 1

        moved = client.patch(
            f"/orders/{order_id}/status",
            json={"status": "processing"},
            headers={"X-Account-Id": "staff"},
        )
        assert moved.status_code == 200
        assert moved.json()["status"] == "processing"

        illegal = client.patch(
            f"/orders/{order_id}/status",
            json={"status": "awaiting_payment"},
            headers={"X-Account-Id": "staff"},
        )
        assert illegal.status_code == 409

    def test_customer_cannot_change_status(self, client):
        order_id = client.post("/checkout", json=checkout_body()).json()["order"]["id"]
        response = client.patch(
            f"/orders/{order_id}/status",
            json={"status": "cancelled"},
            headers={"X-Account-Id": "acc-7"},
        )
        assert response.status_code == 403

    def test_reconcile_payment(self, storefront, client):
        asyncio.run(storefront.roles.assign("staff", Role.ADMIN))
        created = client.post(
            "/checkout", json=checkout_body(payment_method="external_redirect")
        ).json()["order"]
        storefront.payments.settle(created["payment_reference"], PaymentStatus.PAID)
        response = client.post(
            f"/orders/{created['id']}/reconcile-payment", headers={"X-Account-Id": "staff"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "pending"


# ── Settings Wiring Tests ─────────────────────────────────────


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def sqlite_settings(tmp_path, **changes) -> AppSettings:
    return AppSettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        store=StoreSettings().with_origin(0.0, 0.0),
        **changes,
    )


async def seed_catalog(url: str, *products: Product) -> None:
    session_factory, engine = await create_database(url)
    catalog = SQLAlchemyCatalog(session_factory)
    for product in products:
        await catalog.put(product)
    await engine.dispose()


class TestFromSettings:
    def test_wires_sqlalchemy_stores(self, tmp_path, root_logger):
        settings = sqlite_settings(tmp_path, log_level="DEBUG")

        async def flow():
            store = await Storefront.from_settings(settings)
            try:
                await store.catalog.put(BURGER)
                return store, await store.catalog.get("burger")
            finally:
                await store.aclose()

        store, found = asyncio.run(flow())
        assert isinstance(store.catalog, SQLAlchemyCatalog)
        assert isinstance(store.orders, SQLAlchemyOrderStore)
        assert isinstance(store.geocoder, StaticGeocoder)
        assert found == BURGER
        assert root_logger.level == logging.DEBUG
        assert store.closers == []

    def test_openroute_geocoder_when_key_set(self, tmp_path, root_logger):
        settings = sqlite_settings(tmp_path, openroute_api_key="ors-key")

        async def flow():
            store = await Storefront.from_settings(settings)
            geocoder = store.geocoder
            await store.aclose()
            return geocoder

        assert isinstance(asyncio.run(flow()), OpenRouteGeocoder)

    def test_missing_key_warns(self, tmp_path, root_logger, caplog):
        # setup_logging replaces the root handlers, so listen on the module logger
        http_logger = logging.getLogger("storefront.http")
        http_logger.addHandler(caplog.handler)

        async def flow():
            store = await Storefront.from_settings(sqlite_settings(tmp_path))
            await store.aclose()

        try:
            asyncio.run(flow())
        finally:
            http_logger.removeHandler(caplog.handler)
        assert any("OpenRouteService" in r.getMessage() for r in caplog.records)

    def test_app_built_on_startup(self, tmp_path, root_logger):
        settings = sqlite_settings(tmp_path)
        asyncio.run(seed_catalog(settings.database_url, BURGER))
        body = checkout_body(delivery_method="pickup", address={}, payment_method="cash")

        with TestClient(create_app(settings=settings)) as client:
            created = client.post("/checkout", json=body, headers={"X-Account-Id": "acc-7"})
            assert created.status_code == 201
            assert created.json()["order"]["total"] == "15.98"
            listed = client.get("/orders", headers={"X-Account-Id": "acc-7"})
            assert [o["id"] for o in listed.json()] == [created.json()["order"]["id"]]
