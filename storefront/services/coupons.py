"""
Coupon validation

The backend decides eligibility and discount amount; this module only
forwards the code, keeps the answer, and translates rejections into
messages for the shopper.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..core.exceptions import BackendError, BackendUnavailableError, StorefrontError
from ..core.money import Amount, to_money
from .backend_client import BackendClient

logger = logging.getLogger(__name__)


class RejectionKind(str, Enum):
    """Why a coupon was not applied"""
    EMPTY_CODE = "EMPTY_CODE"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    MINIMUM_NOT_MET = "MINIMUM_NOT_MET"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    ALREADY_USED = "ALREADY_USED"
    GENERIC_ERROR = "GENERIC_ERROR"


REJECTION_MESSAGES: dict[RejectionKind, str] = {
    RejectionKind.EMPTY_CODE: "Ingresa un codigo de cupon",
    RejectionKind.NOT_FOUND: "El cupon ingresado no existe",
    RejectionKind.EXPIRED: "El cupon ingresado esta vencido",
    RejectionKind.MINIMUM_NOT_MET: "Tu compra no alcanza el monto minimo para este cupon",
    RejectionKind.USAGE_LIMIT_REACHED: "El cupon alcanzo su limite de usos",
    RejectionKind.ALREADY_USED: "Ya utilizaste este cupon",
    RejectionKind.GENERIC_ERROR: "El cupon ingresado no es valido",
}

# Backend error codes, as sent in ApiErrorResponse.error
_KIND_BY_ERROR_CODE: dict[str, RejectionKind] = {
    "COUPON_NOT_FOUND": RejectionKind.NOT_FOUND,
    "NOT_FOUND": RejectionKind.NOT_FOUND,
    "COUPON_EXPIRED": RejectionKind.EXPIRED,
    "EXPIRED": RejectionKind.EXPIRED,
    "COUPON_MINIMUM_NOT_MET": RejectionKind.MINIMUM_NOT_MET,
    "MINIMUM_NOT_MET": RejectionKind.MINIMUM_NOT_MET,
    "MINIMUM_PURCHASE_NOT_MET": RejectionKind.MINIMUM_NOT_MET,
    "COUPON_USAGE_LIMIT_REACHED": RejectionKind.USAGE_LIMIT_REACHED,
    "USAGE_LIMIT_REACHED": RejectionKind.USAGE_LIMIT_REACHED,
    "COUPON_ALREADY_USED": RejectionKind.ALREADY_USED,
    "ALREADY_USED": RejectionKind.ALREADY_USED,
}


class CouponRejected(StorefrontError):
    """Coupon was not accepted"""

    def __init__(self, kind: RejectionKind, server_message: Optional[str] = None):
        super().__init__(f"{kind.value}: {server_message or REJECTION_MESSAGES[kind]}")
        self.kind = kind
        self.server_message = server_message

    @property
    def user_message(self) -> str:
        return REJECTION_MESSAGES[self.kind]


def rejection_kind(error: BackendError) -> RejectionKind:
    """Classify a backend error answer for /coupons/validate"""
    if error.error_code:
        kind = _KIND_BY_ERROR_CODE.get(error.error_code.upper().replace(" ", "_"))
        if kind is not None:
            return kind
    if error.status_code == 404:
        return RejectionKind.NOT_FOUND
    return RejectionKind.GENERIC_ERROR


@dataclass(frozen=True)
class AppliedCoupon:
    """Backend-approved discount, bound to the subtotal it was validated for"""
    code: str
    discount: Decimal
    subtotal: Decimal
    discount_type: Optional[str] = None
    description: Optional[str] = None


class CouponValidator:
    """Validates coupon codes against the backend"""

    def __init__(self, client: BackendClient):
        self._client = client

    async def validate(self, code: str, subtotal: Amount) -> AppliedCoupon:
        """
        Validate a coupon code for a subtotal.

        Raises:
            CouponRejected: empty code (no request made) or backend rejection
        """
        code = (code or "").strip()
        if not code:
            raise CouponRejected(RejectionKind.EMPTY_CODE)

        subtotal = to_money(subtotal)
        try:
            result = await self._client.validate_coupon(code, subtotal)
        except BackendError as e:
            kind = rejection_kind(e)
            logger.info(f"Coupon {code} rejected ({kind.value}): {e.message}")
            raise CouponRejected(kind, e.message) from e
        except BackendUnavailableError as e:
            raise CouponRejected(RejectionKind.GENERIC_ERROR, str(e)) from e

        if not result.valid:
            raise CouponRejected(RejectionKind.GENERIC_ERROR, result.description)

        return AppliedCoupon(
            code=result.code,
            discount=to_money(result.discount),
            subtotal=subtotal,
            discount_type=result.discount_type,
            description=result.description,
        )


class CouponState:
    """
    The coupon currently applied to a storefront session.

    Holds at most one coupon. apply() swaps the coupon in a single
    assignment, so an old and a new discount never coexist.
    """

    def __init__(self, validator: CouponValidator):
        self._validator = validator
        self.applied: Optional[AppliedCoupon] = None
        self.error: Optional[str] = None

    @property
    def code(self) -> Optional[str]:
        return self.applied.code if self.applied else None

    @property
    def discount(self) -> Decimal:
        return self.applied.discount if self.applied else Decimal("0.00")

    def is_current(self, subtotal: Amount) -> bool:
        return self.applied is not None and self.applied.subtotal == to_money(subtotal)

    def discount_for(self, subtotal: Amount) -> Decimal:
        """Discount for this subtotal; none while the coupon awaits revalidation"""
        return self.applied.discount if self.is_current(subtotal) else Decimal("0.00")

    async def apply(self, code: str, subtotal: Amount) -> AppliedCoupon:
        self.error = None
        try:
            coupon = await self._validator.validate(code, subtotal)
        except CouponRejected as e:
            self.applied = None
            self.error = e.user_message
            raise
        self.applied = coupon
        logger.info(f"Coupon {coupon.code} applied: -{coupon.discount}")
        return coupon

    async def revalidate(self, subtotal: Amount) -> Optional[AppliedCoupon]:
        """
        Validate the applied coupon again once the subtotal has changed.

        The backend may grant a different discount or reject the coupon
        (for example a minimum purchase no longer met); a rejected coupon is
        dropped and its message kept in `error`.
        """
        if self.applied is None or self.is_current(subtotal):
            return self.applied

        code = self.applied.code
        try:
            return await self.apply(code, subtotal)
        except CouponRejected as e:
            logger.info(f"Coupon {code} dropped after cart change: {e.kind.value}")
            return None

    def remove(self) -> None:
        self.applied = None
        self.error = None
