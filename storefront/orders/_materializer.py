"""
Order materializer — validated draft + cart → stored order.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error

from storefront import graph as G
from storefront.cart._cart import Cart
from storefront.checkout._settings import StoreSettings
from storefront.checkout._types import CheckoutDraft
from storefront.fee._types import FeeQuote
from storefront.identity._resolver import GuestIdentityResolver
from storefront.identity._types import Session
from storefront.orders._graph import PersistOrderNode, SubmissionRequest
from storefront.orders._guard import SubmissionGuard
from storefront.orders._types import CheckoutError, Submission

if TYPE_CHECKING:
    from storefront.ports import OrderStore, PaymentGateway

logger = logging.getLogger(__name__)


def owner_key(draft: CheckoutDraft, session: Session | None) -> str:
    """Who may see a replayed submission: the account, or the guest's email."""
    if session is not None:
        return f"account:{session.account_id}"
    return f"guest:{draft.contact.email.strip().casefold()}"


class OrderMaterializer:
    """
    Turns a checkout into an order.

    The submission runs as a graph (see orders._graph); this class adds the
    per-draft guard and clears the cart once the order is stored.

    Example:
        materializer = OrderMaterializer(cart, settings, orders, resolver, payments)
        match await materializer.submit(form.draft, tracker.current, session):
            case Ok(submission):
                if submission.redirect_url:
                    open_browser(submission.redirect_url)
            case Error(e):
                show_toast(e.message)
    """

    def __init__(
        self,
        cart: Cart,
        settings: StoreSettings,
        orders: OrderStore,
        identity: GuestIdentityResolver,
        payments: PaymentGateway | None = None,
        guard: SubmissionGuard[Submission] | None = None,
    ) -> None:
        self._cart = cart
        self._settings = settings
        self._orders = orders
        self._identity = identity
        self._payments = payments
        self._guard = guard if guard is not None else SubmissionGuard[Submission]()

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    async def submit(
        self,
        draft: CheckoutDraft,
        quote: FeeQuote,
        session: Session | None = None,
    ) -> Result[Submission, CheckoutError]:
        key = draft.draft_id
        match await self._guard.begin(key, owner_key(draft, session)):
            case Error(e):
                logger.info("Submission for draft %s rejected: %s", key, e.code)
                return Error(e)
            case Ok(None):
                pass
            case Ok(previous):
                logger.info("Draft %s already submitted, returning order %s", key, previous.order.id)
                return Ok(previous)

        request = SubmissionRequest(
            draft=draft,
            quote=quote,
            session=session,
            lines=self._cart.lines,
            settings=self._settings,
            orders=self._orders,
            identity=self._identity,
            payments=self._payments,
        )

        start = time.perf_counter()
        try:
            node = await G.compose(PersistOrderNode, request, detail=f"checkout:{key}")
        except CheckoutError as e:
            await self._guard.release(key)
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning("Checkout %s failed in %.0fms: %s %s", key, elapsed, e.code, e.message)
            return Error(e)
        except BaseException:
            await self._guard.release(key)
            raise

        submission = node.data
        await self._guard.complete(key, submission)
        self._cart.clear()
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Checkout %s completed in %.0fms: order %s", key, elapsed, submission.order.id)
        return Ok(submission)


__all__ = ("owner_key", "OrderMaterializer")
