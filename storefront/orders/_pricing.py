"""
Catalog pricing — client line requests → server-priced cart items.

Only product ids, quantities and option choices come from the client;
names and prices are read from the catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront.cart._types import CartItem, SelectedOptions
from storefront.orders._types import CheckoutError, ErrorCode

if TYPE_CHECKING:
    from storefront.ports import ProductCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LineRequest:
    """What the client may say about a cart line."""

    product_id: str
    quantity: int = 1
    selected_options: SelectedOptions = field(default_factory=dict)


def _unavailable(product_id: str) -> CheckoutError:
    return CheckoutError(
        ErrorCode.UNKNOWN_PRODUCT,
        "Some items in your cart are no longer available",
        details={product_id: "not available"},
    )


async def price_lines(
    catalog: ProductCatalog,
    requests: Sequence[LineRequest],
) -> Result[tuple[CartItem, ...], CheckoutError]:
    """
    Price every requested line from the catalog.

    Unknown or unavailable products, and option choices the product does
    not offer, reject the whole cart with UNKNOWN_PRODUCT.
    """
    items: list[CartItem] = []
    for request in requests:
        product_id = request.product_id
        found = await L.catching_async(
            lambda: catalog.get(product_id),
            on_error=lambda e: str(e) or type(e).__name__,
        )
        match found:
            case Error(reason):
                logger.error("Catalog lookup for %s failed: %s", product_id, reason)
                return Error(
                    CheckoutError(
                        ErrorCode.STORE_ERROR,
                        "We could not load the menu, please try again",
                    )
                )
            case Ok(None):
                logger.info("Rejecting unknown product %s", product_id)
                return Error(_unavailable(product_id))
            case Ok(product) if not product.available:
                logger.info("Rejecting unavailable product %s", product_id)
                return Error(_unavailable(product_id))
            case Ok(product):
                try:
                    items.append(product.item(request.quantity, request.selected_options))
                except ValueError as e:
                    logger.info("Rejecting line for %s: %s", product_id, e)
                    return Error(_unavailable(product_id))
    return Ok(tuple(items))


__all__ = ("LineRequest", "price_lines")
