# Storefront Services

from .backend_client import BackendClient
from .cart_store import CartStore
from .checkout import CheckoutStateMachine
from .coupons import AppliedCoupon, CouponRejected, CouponState, CouponValidator, RejectionKind
from .orchestrator import OrderOrchestrator, PaymentRedirect
from .pricing import CartTotals, compute_totals
from .shipping import ShippingCostResolver

__all__ = [
    "BackendClient",
    "CartStore",
    "CheckoutStateMachine",
    "AppliedCoupon",
    "CouponRejected",
    "CouponState",
    "CouponValidator",
    "RejectionKind",
    "OrderOrchestrator",
    "PaymentRedirect",
    "CartTotals",
    "compute_totals",
    "ShippingCostResolver",
]
