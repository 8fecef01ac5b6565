"""
Order / payment orchestration

Creates the shipping address, the order and the payment session, in that
order, and returns the provider URL the shopper must be sent to.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from ..core.exceptions import BackendError, OrderError, StorefrontError
from ..models.api import CreateAddressRequest, CreateOrderRequest, PaymentProvider
from ..models.checkout import CheckoutDraft, provider_for
from .backend_client import BackendClient

logger = logging.getLogger(__name__)

GENERIC_ORDER_ERROR = "Error al procesar el pedido. Intenta de nuevo."
ADDRESS_LABEL = "Envio"


@dataclass(frozen=True)
class PaymentRedirect:
    """Where to send the shopper to pay"""
    url: str
    provider: PaymentProvider
    order_id: str
    address_id: str
    order_number: Optional[str] = None


class OrderOrchestrator:
    """
    Runs address -> order -> payment session as a strict sequence.

    Each call depends on the id returned by the previous one. A failure
    stops the sequence; records already created stay on the backend and a
    later submit() creates fresh ones.
    """

    def __init__(self, client: BackendClient, prefer_sandbox: bool = True):
        self._client = client
        self.prefer_sandbox = prefer_sandbox

    async def submit(
        self,
        draft: CheckoutDraft,
        coupon_code: Optional[str] = None,
    ) -> PaymentRedirect:
        """
        Place the order described by a validated checkout draft.

        Raises:
            OrderError: any of the three calls failed, or the provider
                returned no redirect URL
        """
        if draft.payment_method is None:
            raise OrderError(GENERIC_ORDER_ERROR, stage="validation")

        provider = provider_for(draft.payment_method)
        personal = draft.personal
        address = draft.address

        # 1. Shipping address
        address_request = CreateAddressRequest(
            label=ADDRESS_LABEL,
            recipient_name=personal.full_name,
            street=address.street.strip(),
            number=address.number.strip(),
            apartment=address.apartment.strip() or None,
            city=address.city.strip(),
            department=address.department,
            postal_code=address.postal_code.strip(),
            phone=personal.phone.strip() or None,
        )
        created_address = await self._step("address", self._client.create_address(address_request))
        logger.info(f"Address {created_address.id} created for {personal.email}")

        # 2. Order from the cart
        order_request = CreateOrderRequest(
            address_id=created_address.id,
            payment_provider=provider,
            notes=address.notes.strip() or None,
            coupon_code=coupon_code or None,
        )
        order = await self._step(
            "order",
            self._client.create_order(order_request),
            left_behind=[f"address {created_address.id}"],
        )
        logger.info(f"Order {order.id} created with provider {provider.value}")

        # 3. Payment session
        payment = await self._step(
            "payment",
            self._client.create_payment(order.id, provider),
            left_behind=[f"address {created_address.id}", f"order {order.id}"],
        )

        url = payment.redirect_url(prefer_sandbox=self.prefer_sandbox)
        if not url:
            logger.error(f"Payment session for order {order.id} has no redirect URL")
            raise OrderError(GENERIC_ORDER_ERROR, stage="payment")

        logger.info(f"Redirecting order {order.id} to {provider.value}")
        return PaymentRedirect(
            url=url,
            provider=provider,
            order_id=order.id,
            address_id=created_address.id,
            order_number=order.order_number,
        )

    @staticmethod
    async def _step(stage: str, call, left_behind=()):
        try:
            return await call
        except BackendError as e:
            logger.error(f"Checkout {stage} step failed: {e}")
            _log_left_behind(left_behind)
            raise OrderError(e.server_message or GENERIC_ORDER_ERROR, stage=stage) from e
        except (StorefrontError, ValidationError) as e:
            logger.error(f"Checkout {stage} step failed: {e}")
            _log_left_behind(left_behind)
            raise OrderError(GENERIC_ORDER_ERROR, stage=stage) from e


def _log_left_behind(records) -> None:
    # Nothing is rolled back; a retry creates new records
    if records:
        logger.warning(f"Records left on the backend: {', '.join(records)}")
