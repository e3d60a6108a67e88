"""
Checkout demo — guest checkout, redirect payment and admin status flow.

Run: uv run python examples/checkout_demo.py
"""

import asyncio
from dataclasses import replace
from decimal import Decimal

from kungfu import Ok, Error

from storefront.adapters.memory import (
    MemoryCatalog,
    MemoryIdentityProvider,
    MemoryOrderStore,
    MemoryPaymentGateway,
    MemoryProfileStore,
    MemoryRoleStore,
    StaticGeocoder,
)
from storefront.cart import Cart, MemoryCartStorage, Product
from storefront.checkout import CheckoutForm, DeliveryMethod, PaymentMethod, StoreSettings
from storefront.fee import Coordinates, FeeCalculator, QuoteTracker
from storefront.identity import GuestIdentityResolver
from storefront.log import setup_logging
from storefront.orders import (
    LineRequest,
    OrderAdmin,
    OrderMaterializer,
    OrderStatus,
    PaymentStatus,
    Role,
    price_lines,
)


def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


async def main() -> None:
    setup_logging("WARNING")

    settings = StoreSettings().with_origin(-22.9056, -47.0608).with_redirect_payments()
    geocoder = StaticGeocoder(default=Coordinates(-22.8786, -47.0608))  # ~3 km north
    orders, roles, payments = MemoryOrderStore(), MemoryRoleStore(), MemoryPaymentGateway()
    resolver = GuestIdentityResolver(MemoryIdentityProvider(), MemoryProfileStore())

    catalog = MemoryCatalog((
        Product("burger", "X-Burger", Decimal("7.99"), options={"Extras": {"bacon": Decimal("3.00")}}),
        Product("soda", "Soda", Decimal("5.50")),
    ))
    cart = Cart(MemoryCartStorage())
    match await price_lines(catalog, [LineRequest("burger", 2, {"Extras": ["bacon"]})]):
        case Ok(items):
            for item in items:
                cart.add(item)
        case Error(e):
            print(f"   Error: {e.code} {e.message}")
            return

    banner("1. Fill the form")
    form = CheckoutForm(settings, cart=cart, language="pt")
    form.update_contact(name="Ana Souza", email="ana@example.com", phone="19999990000")
    form.update_address(
        street="Rua das Flores", number="12", neighborhood="Centro",
        city="Campinas", postal_code="13010-000",
    )
    tracker = QuoteTracker(FeeCalculator(geocoder, settings.fee_table), settings.origin)
    form.apply_quote(await tracker.watch(form.draft.delivery_method, form.draft.address))
    print(f"   Subtotal: {cart.subtotal()}  Fee: {form.quote.fee}  Errors: {form.errors}")

    banner("2. Submit (pix)")
    materializer = OrderMaterializer(cart, settings, orders, resolver, payments)
    match await materializer.submit(form.draft, form.quote):
        case Ok(submission):
            order = submission.order
            print(f"   Order {order.id[:8]} total={order.total} status={order.status}")
        case Error(e):
            print(f"   Error: {e.code} {e.message}")
            return

    banner("3. Submit (redirect payment)")
    soda = await catalog.get("soda")
    assert soda is not None
    cart.add(soda.item())
    form.select_delivery_method(DeliveryMethod.PICKUP)
    form.select_payment_method(PaymentMethod.EXTERNAL_REDIRECT)
    draft = replace(form.draft, draft_id="demo-redirect")
    match await materializer.submit(draft, form.quote):
        case Ok(submission):
            print(f"   Open {submission.redirect_url}")
            redirect_order = submission.order
            print(f"   Order {redirect_order.id[:8]} status={redirect_order.status}")
        case Error(e):
            print(f"   Error: {e.code} {e.message}")
            return

    banner("4. Back office")
    admin = OrderAdmin(orders, roles, payments)
    await roles.assign("staff", Role.ADMIN)
    payments.settle(redirect_order.payment_reference, PaymentStatus.PAID)
    match await admin.reconcile_payment(redirect_order.id):
        case Ok(o):
            print(f"   Paid → {o.status}")
        case Error(e):
            print(f"   Error: {e.code}")
    for status in (OrderStatus.PROCESSING, OrderStatus.DELIVERED):
        match await admin.update_status("staff", order.id, status):
            case Ok(o):
                print(f"   {order.id[:8]} → {o.status}")
            case Error(e):
                print(f"   {order.id[:8]} ✗ {e.code}: {e.message}")


if __name__ == "__main__":
    asyncio.run(main())
