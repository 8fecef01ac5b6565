# Storefront Models

from .cart import Cart, CartItem, AddToCartRequest, UpdateCartItemRequest
from .api import (
    Address,
    ApiErrorResponse,
    CouponValidationResponse,
    CreateAddressRequest,
    CreateOrderRequest,
    CreatePaymentRequest,
    ConfirmSimulationRequest,
    Order,
    PaymentProvider,
    PaymentSession,
    ShippingQuote,
    StoreSettings,
    UserProfile,
)
from .checkout import (
    CheckoutDraft,
    CheckoutStep,
    PaymentMethod,
    PersonalData,
    ShippingAddressDraft,
    provider_for,
)

__all__ = [
    "Cart",
    "CartItem",
    "AddToCartRequest",
    "UpdateCartItemRequest",
    "Address",
    "ApiErrorResponse",
    "CouponValidationResponse",
    "CreateAddressRequest",
    "CreateOrderRequest",
    "CreatePaymentRequest",
    "ConfirmSimulationRequest",
    "Order",
    "PaymentProvider",
    "PaymentSession",
    "ShippingQuote",
    "StoreSettings",
    "UserProfile",
    "CheckoutDraft",
    "CheckoutStep",
    "PaymentMethod",
    "PersonalData",
    "ShippingAddressDraft",
    "provider_for",
]
