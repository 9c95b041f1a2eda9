"""
validation.py — Input checks that run before anything is stored or sent to PayPal.

Both functions are pure: they either return normally or raise, and never touch
an external system.
"""

from decimal import Decimal
from typing import Optional, Sequence

from .errors import InvalidCartError, InvalidOrderError
from .models import Cart, CartItem, Customer


def _has_positive_total(total: Optional[Decimal]) -> bool:
    return total is not None and total > 0


def _has_items(items: Optional[Sequence[CartItem]]) -> bool:
    return isinstance(items, (list, tuple)) and len(items) > 0


def validate_cart(cart: Optional[Cart]) -> Cart:
    """
    Checks a cart before a payment authorization is requested for it.

    Returns:
        Cart: The same cart, for chaining.
    Raises:
        InvalidCartError: If the cart is absent, its total is absent or not positive,
            or it has no items.
    """
    if cart is None or not _has_positive_total(cart.total):
        raise InvalidCartError("Invalid cart: Total amount must be greater than zero")
    if not _has_items(cart.items):
        raise InvalidCartError("Invalid cart: No items found")
    return cart


def validate_order_fields(user: Optional[Customer],
                          items: Optional[Sequence[CartItem]],
                          total: Optional[Decimal],
                          payment_method: Optional[str]) -> None:
    """
    Checks a direct order placement for completeness.

    Raises:
        InvalidOrderError: Listing every missing field. A non-positive total or an
            empty item list count as missing.
    """
    missing = []
    if user is None:
        missing.append("user")
    if not _has_items(items):
        missing.append("cartItems")
    if not _has_positive_total(total):
        missing.append("totalAmount")
    if not payment_method:
        missing.append("paymentMethod")

    if missing:
        raise InvalidOrderError("Incomplete order data", f"missing: {', '.join(missing)}")
