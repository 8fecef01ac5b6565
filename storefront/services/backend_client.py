"""
Store Backend Client

HTTP client for the storefront's REST backend.
Covers the cart, coupon, shipping, settings, address, order and payment
endpoints used by checkout.
"""

import logging
from decimal import Decimal
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.exceptions import BackendError, BackendUnavailableError
from ..models.api import (
    Address,
    ApiErrorResponse,
    ConfirmSimulationRequest,
    CouponValidationResponse,
    CreateAddressRequest,
    CreateOrderRequest,
    CreatePaymentRequest,
    Order,
    PaymentProvider,
    PaymentSession,
    ShippingQuote,
    StoreSettings,
    UserProfile,
)
from ..models.cart import AddToCartRequest, Cart

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

INVALID_RESPONSE_MESSAGE = "Invalid response from store backend"


class BackendClient:
    """
    Client for the store backend API.

    One instance per storefront session; the bearer token identifies the
    shopper whose cart, addresses and orders are touched.
    """

    def __init__(
        self,
        api_base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize backend client.

        Args:
            api_base_url: Base URL of the store API (e.g. https://shop.example/api)
            access_token: Shopper's bearer token, if authenticated
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = api_base_url.rstrip("/")
        self.access_token = access_token
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    def _generate_headers(self) -> dict[str, str]:
        """Generate JSON headers, plus Authorization when logged in"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request and decode the JSON answer"""
        url = f"{self.base_url}{path}"

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=self._generate_headers(),
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {path} failed: {e}")
            raise BackendUnavailableError(str(e)) from e

        if response.status_code >= 400:
            logger.error(f"Request failed: {response.status_code} - {response.text}")
            raise self._error_from_response(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise self._invalid_response(f"{method} {path}", e) from e

    @staticmethod
    def _invalid_response(endpoint: str, error: Exception) -> BackendError:
        """A 2xx answer whose body is not what the endpoint returns"""
        logger.error(f"Unexpected response to {endpoint}: {error}")
        return BackendError(status_code=502, message=INVALID_RESPONSE_MESSAGE)

    def _parse(self, model: type[ModelT], data: Any, endpoint: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise self._invalid_response(endpoint, e) from e

    def _parse_cart(self, data: Any, endpoint: str) -> Cart:
        """Cart endpoints wrap the cart in {"data": ...}"""
        if not isinstance(data, dict) or "data" not in data:
            raise self._invalid_response(endpoint, ValueError("missing data envelope"))
        return self._parse(Cart, data["data"], endpoint)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> BackendError:
        """Parse the backend's ApiErrorResponse body, tolerating non-JSON errors"""
        try:
            payload = ApiErrorResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            payload = ApiErrorResponse()

        message = payload.message
        if isinstance(message, list):
            message = "; ".join(message)

        return BackendError(
            status_code=response.status_code,
            message=message or response.reason_phrase or "Request failed",
            error_code=payload.error,
            details=payload.details,
            server_message=message,
        )

    # ==================== Cart APIs ====================

    async def get_cart(self) -> Cart:
        """Get the shopper's cart"""
        data = await self._request("GET", "/cart")
        return self._parse_cart(data, "GET /cart")

    async def add_to_cart(
        self,
        product_id: str,
        variant_id: Optional[str] = None,
        quantity: int = 1,
    ) -> Cart:
        """Add item to cart"""
        request = AddToCartRequest(product_id=product_id, variant_id=variant_id, quantity=quantity)
        data = await self._request(
            "POST",
            "/cart/items",
            body=request.model_dump(by_alias=True, exclude_none=True),
        )
        return self._parse_cart(data, "POST /cart/items")

    async def update_cart_item(self, item_id: str, quantity: int) -> Cart:
        """Update item quantity in cart"""
        data = await self._request(
            "PATCH",
            f"/cart/items/{item_id}",
            body={"quantity": quantity},
        )
        return self._parse_cart(data, "PATCH /cart/items")

    async def remove_cart_item(self, item_id: str) -> Cart:
        """Remove item from cart"""
        data = await self._request("DELETE", f"/cart/items/{item_id}")
        return self._parse_cart(data, "DELETE /cart/items")

    async def clear_cart(self) -> None:
        """Remove every item from the cart"""
        await self._request("DELETE", "/cart")

    # ==================== Pricing APIs ====================

    async def validate_coupon(self, code: str, subtotal: Decimal) -> CouponValidationResponse:
        """Ask the backend whether a coupon applies to this subtotal"""
        data = await self._request(
            "POST",
            "/coupons/validate",
            body={"code": code, "subtotal": float(subtotal)},
        )
        return self._parse(CouponValidationResponse, data, "POST /coupons/validate")

    async def calculate_shipping(self, department: str) -> ShippingQuote:
        """Get the shipping rate for a department"""
        data = await self._request(
            "POST",
            "/shipping/calculate",
            body={"department": department},
        )
        return self._parse(ShippingQuote, data, "POST /shipping/calculate")

    async def get_store_settings(self) -> StoreSettings:
        """Get store settings (payment method toggles)"""
        data = await self._request("GET", "/settings")
        return self._parse(StoreSettings, data, "GET /settings")

    # ==================== Account APIs ====================

    async def get_profile(self) -> UserProfile:
        """Get the authenticated shopper's profile"""
        data = await self._request("GET", "/users/me")
        return self._parse(UserProfile, data, "GET /users/me")

    async def create_address(self, request: CreateAddressRequest) -> Address:
        """Persist a shipping address for the shopper"""
        data = await self._request("POST", "/users/me/addresses", body=request.to_payload())
        return self._parse(Address, data, "POST /users/me/addresses")

    # ==================== Order APIs ====================

    async def create_order(self, request: CreateOrderRequest) -> Order:
        """Create an order from the current cart"""
        data = await self._request("POST", "/orders", body=request.to_payload())
        return self._parse(Order, data, "POST /orders")

    async def get_order(self, order_id: str) -> Order:
        """Get order details"""
        data = await self._request("GET", f"/orders/{order_id}")
        return self._parse(Order, data, "GET /orders")

    # ==================== Payment APIs ====================

    async def create_payment(self, order_id: str, provider: PaymentProvider) -> PaymentSession:
        """Create a payment session with the provider for an order"""
        request = CreatePaymentRequest(order_id=order_id, provider=provider)
        data = await self._request("POST", "/payments/create", body=request.to_payload())
        return self._parse(PaymentSession, data, "POST /payments/create")

    async def confirm_simulation_payment(self, order_id: str, action: str) -> None:
        """Approve or reject a payment made with the simulation provider"""
        request = ConfirmSimulationRequest(order_id=order_id, action=action)
        await self._request("POST", "/payments/simulation/confirm", body=request.to_payload())
