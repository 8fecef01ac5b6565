"""Cart and coupon routes"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..core.exceptions import BackendError, BackendUnavailableError, CartError
from ..core.session import StorefrontSession
from ..models.cart import AddToCartRequest, UpdateCartItemRequest
from ..services.coupons import CouponRejected
from .deps import backend_http_error, get_storefront_session
from .serializers import cart_view

router = APIRouter(prefix="/api/sessions/{session_id}", tags=["Cart"])


class ApplyCouponRequest(BaseModel):
    code: str


async def _cart_response(session: StorefrontSession) -> dict:
    """Cart view, after the applied coupon has been checked against the current subtotal"""
    await session.coupons.revalidate(session.cart.subtotal)
    return cart_view(session)


@router.get("/cart")
async def get_cart(
    refresh: bool = False,
    session: StorefrontSession = Depends(get_storefront_session),
):
    """Get the cart with its totals"""
    try:
        await session.cart.load(force=refresh)
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.post("/cart/items")
async def add_to_cart(
    request: AddToCartRequest,
    session: StorefrontSession = Depends(get_storefront_session),
):
    """Add a product to the cart"""
    try:
        await session.cart.add_item(request.product_id, request.variant_id, request.quantity)
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.patch("/cart/items/{item_id}")
async def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    session: StorefrontSession = Depends(get_storefront_session),
):
    """Set a line's quantity (1 to available stock)"""
    try:
        await session.cart.load()
        await session.cart.set_quantity(item_id, request.quantity)
    except CartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.post("/cart/items/{item_id}/increment")
async def increment_cart_item(
    item_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    try:
        await session.cart.load()
        await session.cart.increment(item_id)
    except CartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.post("/cart/items/{item_id}/decrement")
async def decrement_cart_item(
    item_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    try:
        await session.cart.load()
        await session.cart.decrement(item_id)
    except CartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.delete("/cart/items/{item_id}")
async def remove_cart_item(
    item_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    """Remove a line from the cart"""
    try:
        await session.cart.remove_item(item_id)
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.delete("/cart")
async def clear_cart(session: StorefrontSession = Depends(get_storefront_session)):
    """Remove every line from the cart"""
    try:
        await session.cart.clear()
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)
    return await _cart_response(session)


@router.post("/coupon")
async def apply_coupon(
    request: ApplyCouponRequest,
    session: StorefrontSession = Depends(get_storefront_session),
):
    """Validate a coupon against the current subtotal and apply it"""
    try:
        await session.cart.load()
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)

    subtotal = session.cart.subtotal
    try:
        await session.coupons.apply(request.code, subtotal)
    except CouponRejected as e:
        raise HTTPException(
            status_code=400,
            detail={"kind": e.kind.value, "message": e.user_message},
        )
    return await _cart_response(session)


@router.delete("/coupon")
async def remove_coupon(session: StorefrontSession = Depends(get_storefront_session)):
    """Remove the applied coupon; never calls the backend"""
    session.coupons.remove()
    return await _cart_response(session)
