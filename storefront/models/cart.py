"""Cart models mirrored from the store backend"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CartItem(BaseModel):
    """Line in the shopper's cart"""
    id: str
    product_id: str
    variant_id: Optional[str] = None
    name: str
    variant_name: Optional[str] = None
    slug: str = ""
    image_url: Optional[str] = None
    price: Decimal = Field(ge=0)
    compare_at_price: Optional[Decimal] = None
    quantity: int = Field(ge=1)
    stock: int = Field(ge=0)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def can_increment(self) -> bool:
        return self.quantity < self.stock

    @property
    def can_decrement(self) -> bool:
        return self.quantity > 1


class Cart(BaseModel):
    """Server-owned cart snapshot"""
    items: list[CartItem] = []
    subtotal: Optional[Decimal] = None
    item_count: Optional[int] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AddToCartRequest(BaseModel):
    """Request to add a product to the cart"""
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(default=1, gt=0)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UpdateCartItemRequest(BaseModel):
    """Request to update cart item quantity"""
    quantity: int = Field(gt=0)
