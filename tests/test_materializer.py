"""
Tests — Order Materializer
============================
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from storefront.checkout import CheckoutForm, DeliveryMethod, PaymentMethod
from storefront.fee import BlockedReason, FeeQuote
from storefront.identity import Session
from storefront.orders import (
    CheckoutError,
    ErrorCode,
    OrderMaterializer,
    OrderStatus,
    RecordState,
    Submission,
    SubmissionGuard,
    owner_key,
)


def ok(result) -> Submission:
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"{e.code}: {e.message}")


def err(result) -> CheckoutError:
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"expected failure, got {value!r}")


# ── End-to-End Tests ──────────────────────────────────────────


class TestSubmitEndToEnd:
    def test_pix_delivery_is_pending(self, materializer, draft, cart, orders, six):
        submission = ok(asyncio.run(materializer.submit(draft, six)))
        order = submission.order

        assert order.subtotal == Decimal("15.98")
        assert order.delivery_fee == Decimal("6.00")
        assert order.total == Decimal("21.98")
        assert order.status is OrderStatus.PENDING
        assert submission.redirect_url is None
        assert order.owner_account_id
        assert orders.orders[order.id] == order
        assert cart.is_empty

    def test_redirect_payment_awaits_payment(
        self, cart, settings, orders, resolver, payments, draft, six
    ):
        settings = settings.with_redirect_payments()
        materializer = OrderMaterializer(cart, settings, orders, resolver, payments)
        draft = replace(draft, payment_method=PaymentMethod.EXTERNAL_REDIRECT)

        submission = ok(asyncio.run(materializer.submit(draft, six)))
        assert submission.order.status is OrderStatus.AWAITING_PAYMENT
        assert submission.order.total == Decimal("21.98")
        assert submission.redirect_url is not None

        intent_id = submission.order.payment_reference
        amount, currency, metadata = payments.intents[intent_id]
        assert amount == Decimal("21.98")
        assert currency == "BRL"
        assert metadata["draft_id"] == draft.draft_id

    def test_items_and_address_are_normalized(self, materializer, draft, six):
        draft = replace(draft, notes="  ring twice ")
        order = ok(asyncio.run(materializer.submit(draft, six))).order
        item = order.items[0]
        assert (item.product_id, item.quantity, item.unit_price, item.line_total) == (
            "burger", 2, Decimal("7.99"), Decimal("15.98"),
        )
        assert order.address.name == "Ana Souza"
        assert order.address.email == "ana@example.com"
        assert order.address.delivery_method == "delivery"
        assert order.address.payment_method == "pix"
        assert order.address.street == "Rua das Flores"
        assert order.address.notes == "ring twice"

    def test_pickup_has_no_fee(self, materializer, draft):
        draft = replace(draft, delivery_method=DeliveryMethod.PICKUP, payment_method=PaymentMethod.CASH)
        order = ok(asyncio.run(materializer.submit(draft, FeeQuote.free()))).order
        assert order.delivery_fee == Decimal("0.00")
        assert order.total == Decimal("15.98")
        assert order.address.street == ""

    def test_session_owner_and_profile_refresh(self, materializer, draft, identity, profiles, six):
        session = Session(account_id="acc-42", email="ana@example.com")
        order = ok(asyncio.run(materializer.submit(draft, six, session))).order
        assert order.owner_account_id == "acc-42"
        assert identity.sign_up_calls == []
        assert profiles.profiles["acc-42"].name == "Ana Souza"

    def test_profile_refresh_failure_does_not_abort(self, materializer, draft, profiles, six):
        profiles.fail = True
        session = Session(account_id="acc-42", email="ana@example.com")
        assert ok(asyncio.run(materializer.submit(draft, six, session))).order.owner_account_id == "acc-42"


# ── Readiness Tests ───────────────────────────────────────────


class TestSubmitRejections:
    def test_blocked_quote_never_inserts(self, materializer, draft, orders, identity, cart):
        quote = FeeQuote.blocked(BlockedReason.OUTSIDE_AREA, distance_km=12.0)
        e = err(asyncio.run(materializer.submit(draft, quote)))
        assert e.code == ErrorCode.FEE_BLOCKED
        assert orders.insert_calls == 0
        assert identity.sign_up_calls == []
        assert not cart.is_empty

    def test_calculation_error_blocks(self, materializer, draft, orders):
        quote = FeeQuote.blocked(BlockedReason.CALCULATION_ERROR)
        assert err(asyncio.run(materializer.submit(draft, quote))).code == ErrorCode.FEE_BLOCKED
        assert orders.insert_calls == 0

    def test_indeterminate_delivery_fee(self, materializer, draft, orders):
        e = err(asyncio.run(materializer.submit(draft, FeeQuote.indeterminate())))
        assert e.code == ErrorCode.FEE_PENDING
        assert orders.insert_calls == 0

    def test_quote_for_other_address_pends(self, materializer, draft, orders):
        other = replace(draft.address, street="Rua Longe", number="900")
        stale = FeeQuote.priced(Decimal("6.00"), 3.0, address_key=other.quote_key)
        e = err(asyncio.run(materializer.submit(draft, stale)))
        assert e.code == ErrorCode.FEE_PENDING
        assert orders.insert_calls == 0

    def test_unkeyed_priced_quote_pends(self, materializer, draft, orders):
        quote = FeeQuote.priced(Decimal("6.00"), 3.0)
        assert err(asyncio.run(materializer.submit(draft, quote))).code == ErrorCode.FEE_PENDING
        assert orders.insert_calls == 0

    def test_edited_address_needs_new_quote(
        self, materializer, settings, draft, calculator, orders
    ):
        form = CheckoutForm(settings, draft)

        async def flow():
            first = await calculator.compute_fee(
                form.draft.delivery_method, form.draft.address, settings.origin
            )
            form.apply_quote(first)
            stale = form.quote
            form.update_address(street="Rua Longe", number="900")
            rejected = await materializer.submit(form.draft, stale)
            fresh = await calculator.compute_fee(
                form.draft.delivery_method, form.draft.address, settings.origin
            )
            return stale, rejected, await materializer.submit(form.draft, fresh)

        stale, rejected, accepted = asyncio.run(flow())
        assert stale.fee == Decimal("6.00")
        assert err(rejected).code == ErrorCode.FEE_PENDING
        assert ok(accepted).order.address.street == "Rua Longe"
        assert orders.insert_calls == 1

    def test_empty_cart(self, materializer, draft, cart, six):
        cart.clear()
        assert err(asyncio.run(materializer.submit(draft, six))).code == ErrorCode.EMPTY_CART

    def test_invalid_draft(self, materializer, draft, six):
        draft = draft.with_contact(email="nope")
        e = err(asyncio.run(materializer.submit(draft, six)))
        assert e.code == ErrorCode.INVALID_DRAFT
        assert "email" in e.details


# ── Collaborator Failure Tests ────────────────────────────────


class TestSubmitFailures:
    def test_payment_intent_failure_writes_nothing(
        self, cart, settings, orders, resolver, payments, identity, draft, six
    ):
        payments.fail = True
        materializer = OrderMaterializer(
            cart, settings.with_redirect_payments(), orders, resolver, payments
        )
        draft = replace(draft, payment_method=PaymentMethod.EXTERNAL_REDIRECT)
        e = err(asyncio.run(materializer.submit(draft, six)))
        assert e.code == ErrorCode.PAYMENT_INTENT_FAILED
        assert orders.insert_calls == 0
        assert identity.sign_up_calls == []

    def test_identity_double_failure_creates_no_order(
        self, materializer, draft, identity, orders, cart, six
    ):
        identity.fail = True
        e = err(asyncio.run(materializer.submit(draft, six)))
        assert e.code == ErrorCode.IDENTITY_FAILED
        assert len(identity.sign_up_calls) == 2
        assert orders.insert_calls == 0
        assert not cart.is_empty

    def test_insert_failure_leaves_orphan_and_cart(
        self, materializer, draft, orders, identity, cart, caplog, six
    ):
        orders.fail = True
        e = err(asyncio.run(materializer.submit(draft, six)))
        assert e.code == ErrorCode.ORDER_INSERT_FAILED
        assert orders.insert_calls == 1
        assert len(identity.accounts) == 1
        assert "orphaned" in caplog.text
        assert not cart.is_empty

    def test_failure_releases_guard(self, materializer, draft, orders, six):
        orders.fail = True
        asyncio.run(materializer.submit(draft, six))
        orders.fail = False
        assert isinstance(asyncio.run(materializer.submit(draft, six)), Ok)


# ── Guard Tests ───────────────────────────────────────────────


class TestSubmissionGuard:
    def test_in_flight_submission_rejected(self, materializer, draft, identity, orders, six):
        identity.delay = 0.02

        async def double() -> tuple:
            return await asyncio.gather(
                materializer.submit(draft, six),
                materializer.submit(draft, six),
            )

        first, second = asyncio.run(double())
        assert isinstance(first, Ok)
        assert err(second).code == ErrorCode.SUBMISSION_IN_FLIGHT
        assert len(orders.orders) == 1
        assert len(identity.sign_up_calls) == 1

    def test_completed_draft_replays_order(self, materializer, draft, orders, six):
        first = ok(asyncio.run(materializer.submit(draft, six)))
        second = ok(asyncio.run(materializer.submit(draft, six)))
        assert first.order.id == second.order.id
        assert orders.insert_calls == 1

    def test_replay_refused_for_other_account(self, materializer, draft, orders, six):
        owner = Session(account_id="acc-42", email="ana@example.com")
        ok(asyncio.run(materializer.submit(draft, six, owner)))
        intruder = Session(account_id="acc-99", email="eve@example.com")
        e = err(asyncio.run(materializer.submit(draft, six, intruder)))
        assert e.code == ErrorCode.DUPLICATE_SUBMISSION
        assert orders.insert_calls == 1

    def test_replay_for_same_account(self, materializer, draft, six):
        owner = Session(account_id="acc-42", email="ana@example.com")
        first = ok(asyncio.run(materializer.submit(draft, six, owner)))
        again = ok(asyncio.run(materializer.submit(draft, six, owner)))
        assert again.order.id == first.order.id

    def test_replay_refused_for_other_guest(self, materializer, draft, six):
        ok(asyncio.run(materializer.submit(draft, six)))
        other = draft.with_contact(email="eve@example.com")
        assert err(asyncio.run(materializer.submit(other, six))).code == ErrorCode.DUPLICATE_SUBMISSION

    def test_replay_refused_for_guest_after_account(self, materializer, draft, six):
        ok(asyncio.run(materializer.submit(draft, six, Session("acc-42", "ana@example.com"))))
        assert err(asyncio.run(materializer.submit(draft, six))).code == ErrorCode.DUPLICATE_SUBMISSION

    def test_guest_email_case_is_ignored(self, materializer, draft, six):
        first = ok(asyncio.run(materializer.submit(draft, six)))
        shouty = draft.with_contact(email="ANA@Example.com")
        assert ok(asyncio.run(materializer.submit(shouty, six))).order.id == first.order.id

    def test_owner_key(self, draft):
        assert owner_key(draft, Session("acc-42", "x@example.com")) == "account:acc-42"
        assert owner_key(draft, None) == "guest:ana@example.com"

    def test_guard_states(self):
        guard = SubmissionGuard[str]()

        async def flow() -> None:
            assert ok(await guard.begin("k")) is None
            assert err(await guard.begin("k")).code == ErrorCode.SUBMISSION_IN_FLIGHT
            await guard.complete("k", "done")
            assert ok(await guard.begin("k")) == "done"
            assert await guard.release("k")
            assert ok(await guard.begin("k")) is None

        asyncio.run(flow())

    def test_completed_records_expire(self):
        now = [datetime(2026, 1, 1, 12, 0)]
        guard = SubmissionGuard[str](completed_ttl=timedelta(minutes=30), clock=lambda: now[0])

        async def flow() -> None:
            for key in ("a", "b", "c"):
                await guard.begin(key)
                await guard.complete(key, key.upper())
            assert len(guard) == 3
            now[0] += timedelta(minutes=31)
            assert ok(await guard.begin("d")) is None
            assert len(guard) == 1
            assert await guard.state("a") is None
            assert ok(await guard.begin("a")) is None

        asyncio.run(flow())

    def test_pending_records_are_kept(self):
        now = [datetime(2026, 1, 1, 12, 0)]
        guard = SubmissionGuard[str](completed_ttl=timedelta(minutes=30), clock=lambda: now[0])

        async def flow() -> None:
            await guard.begin("slow")
            now[0] += timedelta(hours=2)
            await guard.begin("other")
            assert await guard.state("slow") is RecordState.PENDING

        asyncio.run(flow())

    def test_owner_checked_on_replay(self):
        guard = SubmissionGuard[str]()

        async def flow() -> None:
            await guard.begin("k", "account:a")
            await guard.complete("k", "done")
            assert ok(await guard.begin("k", "account:a")) == "done"
            assert err(await guard.begin("k", "account:b")).code == ErrorCode.DUPLICATE_SUBMISSION

        asyncio.run(flow())
