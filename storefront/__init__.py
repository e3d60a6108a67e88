"""
storefront — checkout pricing and order creation for a food storefront.

    from storefront import fee as F        # Delivery fee quotes
    from storefront import cart            # Client-held cart
    from storefront import checkout        # Delivery/payment form rules
    from storefront import identity        # Guest account promotion
    from storefront import orders          # Submission graph, admin

HTTP surface in storefront.http, collaborators in storefront.adapters.
"""

from storefront import fee
from storefront import cart
from storefront import checkout
from storefront import identity
from storefront import orders
from storefront import graph
from storefront._types import (
    AccountId,
    OrderId,
    LineId,
    money,
)

__version__ = "0.1.0"

__all__ = (
    "fee",
    "cart",
    "checkout",
    "identity",
    "orders",
    "graph",
    "AccountId",
    "OrderId",
    "LineId",
    "money",
)
