"""Wire models for the store backend REST API"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Backend payloads use camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PaymentProvider(str, Enum):
    """Provider identifiers expected by the backend (case-sensitive)"""
    MERCADOPAGO = "MERCADOPAGO"
    DLOCAL_GO = "DLOCAL_GO"
    SIMULATION = "SIMULATION"


class ApiErrorResponse(ApiModel):
    """Error body returned by the backend for 4xx/5xx responses"""
    status_code: Optional[int] = None
    message: Optional[Union[str, list[str]]] = None
    error: Optional[str] = None
    details: Optional[dict[str, list[str]]] = None


class ShippingQuote(ApiModel):
    """Shipping cost for one department"""
    cost: Decimal
    estimated_days: Optional[int] = None
    zone_name: Optional[str] = None


class CouponValidationResponse(ApiModel):
    valid: bool = True
    code: str
    discount_type: Optional[Literal["PERCENTAGE", "FIXED"]] = None
    discount_value: Optional[Decimal] = None
    discount: Decimal = Field(ge=0)
    description: Optional[str] = None


class StoreSettings(ApiModel):
    """Payment toggles managed from the admin panel"""
    id: Optional[str] = None
    hide_out_of_stock: bool = False
    mp_enabled: bool = False
    dl_enabled: bool = False
    updated_at: Optional[datetime] = None


class UserProfile(ApiModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class CreateAddressRequest(ApiModel):
    label: Optional[str] = None
    recipient_name: str
    street: str
    number: str
    apartment: Optional[str] = None
    city: str
    department: str
    postal_code: str
    phone: Optional[str] = None
    is_default: Optional[bool] = None


class Address(ApiModel):
    """Persisted address record"""
    id: str
    label: Optional[str] = None
    recipient_name: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    is_default: bool = False


class CreateOrderRequest(ApiModel):
    address_id: str
    payment_provider: PaymentProvider
    notes: Optional[str] = None
    coupon_code: Optional[str] = None


class Order(ApiModel):
    id: str
    order_number: Optional[str] = None
    status: Optional[str] = None
    subtotal: Optional[Decimal] = None
    shipping_cost: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    total: Optional[Decimal] = None


class CreatePaymentRequest(ApiModel):
    order_id: str
    provider: PaymentProvider


class PaymentSession(ApiModel):
    """
    Payment session created with a provider.

    MercadoPago answers with initPoint (and sandboxInitPoint on test
    credentials); dLocal Go and the simulation provider answer with paymentUrl.
    """
    provider: PaymentProvider
    preference_id: Optional[str] = None
    init_point: Optional[str] = None
    sandbox_init_point: Optional[str] = None
    payment_url: Optional[str] = None

    def redirect_url(self, prefer_sandbox: bool) -> Optional[str]:
        if self.provider == PaymentProvider.MERCADOPAGO:
            if prefer_sandbox and self.sandbox_init_point:
                return self.sandbox_init_point
            return self.init_point or self.sandbox_init_point
        return self.payment_url


class ConfirmSimulationRequest(ApiModel):
    order_id: str
    action: Literal["approve", "reject"]
