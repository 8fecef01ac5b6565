"""
Cart pricing

Single source of truth for every total shown by the cart, the drawer and
checkout. Everything here is a pure function of its arguments.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from ..core.money import Amount, to_money
from ..models.cart import CartItem

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CartTotals:
    """Derived money amounts for one cart snapshot"""
    subtotal: Decimal
    item_count: int
    shipping_cost: Decimal
    is_free_shipping: bool
    shipping_known: bool
    discount: Decimal
    total: Decimal
    remaining_for_free_shipping: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "item_count": self.item_count,
            "shipping_cost": self.shipping_cost,
            "is_free_shipping": self.is_free_shipping,
            "shipping_known": self.shipping_known,
            "discount": self.discount,
            "total": self.total,
            "remaining_for_free_shipping": self.remaining_for_free_shipping,
        }


def cart_subtotal(items: Iterable[CartItem]) -> Decimal:
    return to_money(sum((item.price * item.quantity for item in items), Decimal(0)))


def cart_item_count(items: Iterable[CartItem]) -> int:
    return sum(item.quantity for item in items)


def compute_totals(
    items: Iterable[CartItem],
    shipping_cost: Optional[Amount],
    discount: Amount,
    free_shipping_threshold: Amount,
) -> CartTotals:
    """
    Combine cart lines with shipping and discount.

    Args:
        items: Cart lines
        shipping_cost: Resolved shipping for the destination, or None while
            no destination is known yet
        discount: Discount granted by the backend for the applied coupon
        free_shipping_threshold: Subtotal at or above which shipping is free

    Returns:
        CartTotals. The total is clamped at zero when the discount exceeds
        subtotal plus shipping.
    """
    items = list(items)
    subtotal = cart_subtotal(items)
    threshold = to_money(free_shipping_threshold)
    discount = to_money(discount)

    is_free_shipping = subtotal >= threshold
    shipping_known = is_free_shipping or shipping_cost is not None

    if is_free_shipping or shipping_cost is None:
        effective_shipping = ZERO
    else:
        effective_shipping = to_money(shipping_cost)

    total = max(ZERO, subtotal + effective_shipping - discount)

    return CartTotals(
        subtotal=subtotal,
        item_count=cart_item_count(items),
        shipping_cost=effective_shipping,
        is_free_shipping=is_free_shipping,
        shipping_known=shipping_known,
        discount=discount,
        total=total,
        remaining_for_free_shipping=max(ZERO, threshold - subtotal),
    )
