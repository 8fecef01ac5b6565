"""Cached copy of the server-owned cart"""

import logging
from decimal import Decimal
from typing import Optional

from ..core.exceptions import CartError
from ..core.money import Amount
from ..models.cart import Cart, CartItem
from .backend_client import BackendClient
from .pricing import CartTotals, cart_subtotal, compute_totals

logger = logging.getLogger(__name__)


class CartStore:
    """
    Read-mostly cart cache for one storefront session.

    Every mutation stores the cart the backend answers with and marks the
    cache stale, so the next load() refetches the whole cart. Local edits
    are never merged into the cached copy.
    """

    def __init__(self, client: BackendClient):
        self._client = client
        self._cart: Optional[Cart] = None
        self._stale = True

    @property
    def items(self) -> list[CartItem]:
        return list(self._cart.items) if self._cart else []

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> Decimal:
        return cart_subtotal(self.items)

    @property
    def is_stale(self) -> bool:
        return self._stale

    def invalidate(self) -> None:
        self._stale = True

    def reset(self) -> None:
        """Forget the cached cart (logout)"""
        self._cart = None
        self._stale = True

    async def load(self, force: bool = False) -> Cart:
        """Return the cart, refetching it when stale or forced"""
        if force or self._stale or self._cart is None:
            self._cart = await self._client.get_cart()
            self._stale = False
            logger.debug(f"Cart loaded: {len(self._cart.items)} lines")
        return self._cart

    def get_item(self, item_id: str) -> CartItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise CartError(f"Item {item_id} is not in the cart")

    def _store(self, cart: Optional[Cart]) -> Cart:
        self._cart = cart if cart is not None else Cart(items=[])
        self.invalidate()
        return self._cart

    async def add_item(
        self,
        product_id: str,
        variant_id: Optional[str] = None,
        quantity: int = 1,
    ) -> Cart:
        cart = await self._client.add_to_cart(product_id, variant_id=variant_id, quantity=quantity)
        return self._store(cart)

    async def set_quantity(self, item_id: str, quantity: int) -> Cart:
        """
        Change a line's quantity.

        Raises:
            CartError: quantity below 1 or above the available stock
        """
        item = self.get_item(item_id)
        if quantity < 1:
            raise CartError("Quantity must be at least 1")
        if quantity > item.stock:
            raise CartError(f"Only {item.stock} units of {item.name} available")

        cart = await self._client.update_cart_item(item_id, quantity)
        return self._store(cart)

    async def increment(self, item_id: str) -> Optional[Cart]:
        """Add one unit; does nothing once the line reaches the available stock"""
        item = self.get_item(item_id)
        if not item.can_increment:
            return None
        return await self.set_quantity(item_id, item.quantity + 1)

    async def decrement(self, item_id: str) -> Optional[Cart]:
        """Remove one unit; does nothing at quantity 1"""
        item = self.get_item(item_id)
        if not item.can_decrement:
            return None
        return await self.set_quantity(item_id, item.quantity - 1)

    async def remove_item(self, item_id: str) -> Cart:
        """Remove a line regardless of its quantity or stock"""
        cart = await self._client.remove_cart_item(item_id)
        return self._store(cart)

    async def clear(self) -> Cart:
        await self._client.clear_cart()
        return self._store(None)

    def totals(
        self,
        shipping_cost: Optional[Amount],
        discount: Amount,
        free_shipping_threshold: Amount,
    ) -> CartTotals:
        return compute_totals(self.items, shipping_cost, discount, free_shipping_threshold)
