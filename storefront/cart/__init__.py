"""
Cart — client-held line items, merged by product and options.

Persistence goes through the CartStorage port; writes are synchronous
and failures never reach the caller.

Example:
    from storefront.cart import Cart, CartItem, MemoryCartStorage

    cart = Cart(MemoryCartStorage())
    cart.add(CartItem.of("pizza", "Margherita", 39.90, selected_options={"Size": ["L"]}))
    cart.count()     # 1
    cart.subtotal()  # Decimal("39.90")
"""

from storefront.cart._types import (
    SelectedOptions,
    options_signature,
    CartItem,
    OptionPrices,
    Product,
    CartLine,
)
from storefront.cart._storage import (
    CartPayload,
    CartStorage,
    MemoryCartStorage,
    JsonFileCartStorage,
)
from storefront.cart._cart import Cart

__all__ = (
    "SelectedOptions",
    "options_signature",
    "CartItem",
    "OptionPrices",
    "Product",
    "CartLine",
    "CartPayload",
    "CartStorage",
    "MemoryCartStorage",
    "JsonFileCartStorage",
    "Cart",
)
