"""Checkout routes"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from ..core.exceptions import (
    BackendError,
    BackendUnavailableError,
    CheckoutInProgressError,
    CheckoutValidationError,
    OrderError,
)
from ..core.session import StorefrontSession
from ..models.checkout import PaymentMethod
from ..services.checkout import CheckoutStateMachine
from .deps import backend_http_error, get_storefront_session
from .serializers import checkout_view, totals_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions/{session_id}/checkout", tags=["Checkout"])

EMPTY_CART_MESSAGE = "Tu carrito esta vacio"


class PersonalDataUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AddressUpdate(BaseModel):
    street: Optional[str] = None
    number: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    postal_code: Optional[str] = None
    notes: Optional[str] = None


class PaymentMethodSelection(BaseModel):
    method: PaymentMethod


def get_checkout(session: StorefrontSession = Depends(get_storefront_session)) -> CheckoutStateMachine:
    if session.checkout is None:
        raise HTTPException(status_code=404, detail="Checkout not started")
    return session.checkout


def _validation_error(machine: CheckoutStateMachine) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"step": machine.step.value, "errors": machine.errors},
    )


@router.post("")
async def start_checkout(session: StorefrontSession = Depends(get_storefront_session)):
    """
    Start a checkout for the current cart.

    Refuses an empty cart. Any previous draft for this session is discarded.
    """
    try:
        await session.cart.load(force=True)
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)

    if session.cart.is_empty:
        raise HTTPException(status_code=400, detail=EMPTY_CART_MESSAGE)

    machine = session.start_checkout()
    try:
        await machine.refresh_payment_methods()
    except (BackendError, BackendUnavailableError) as e:
        logger.warning(f"Store settings unavailable at checkout start: {e}")

    return checkout_view(machine, session.shipping)


@router.get("")
async def get_checkout_state(
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    return checkout_view(machine, session.shipping)


@router.patch("/personal")
async def update_personal_data(
    update: PersonalDataUpdate,
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    try:
        for name, value in update.model_dump(exclude_none=True).items():
            machine.set_personal_field(name, value)
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return checkout_view(machine, session.shipping)


@router.patch("/address")
async def update_address(
    update: AddressUpdate,
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    """Update address fields; a new department starts a shipping lookup"""
    try:
        for name, value in update.model_dump(exclude_none=True).items():
            machine.set_address_field(name, value)
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return checkout_view(machine, session.shipping)


@router.put("/payment-method")
async def select_payment_method(
    selection: PaymentMethodSelection,
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    try:
        selected = await machine.select_payment_method(selection.method)
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)

    if not selected:
        raise _validation_error(machine)
    return checkout_view(machine, session.shipping)


@router.post("/next")
async def next_step(
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    try:
        advanced = machine.next_step()
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not advanced:
        raise _validation_error(machine)
    return checkout_view(machine, session.shipping)


@router.post("/back")
async def previous_step(
    session: StorefrontSession = Depends(get_storefront_session),
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    try:
        machine.previous_step()
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return checkout_view(machine, session.shipping)


@router.get("/summary")
async def checkout_summary(machine: CheckoutStateMachine = Depends(get_checkout)):
    """Order totals with the shipping cost resolved for the chosen department"""
    return totals_view(await machine.summary())


@router.post("/submit")
async def submit_order(
    redirect: bool = True,
    machine: CheckoutStateMachine = Depends(get_checkout),
):
    """
    Place the order.

    Answers 303 to the payment provider so the browser leaves the store.
    With ?redirect=false the provider URL is returned as JSON instead.
    """
    try:
        payment = await machine.submit()
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CheckoutValidationError:
        raise _validation_error(machine)
    except OrderError as e:
        raise HTTPException(
            status_code=502,
            detail={"step": machine.step.value, "message": e.user_message},
        )

    if redirect:
        return RedirectResponse(url=payment.url, status_code=303)
    return {
        "redirect_url": payment.url,
        "provider": payment.provider.value,
        "order_id": payment.order_id,
        "order_number": payment.order_number,
    }
