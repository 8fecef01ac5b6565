"""Checkout draft state held by a storefront session"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional

from .api import PaymentProvider


class CheckoutStep(str, Enum):
    """Position of the checkout state machine"""
    PERSONAL_DATA = "personal_data"
    SHIPPING_ADDRESS = "shipping_address"
    PAYMENT_METHOD = "payment_method"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def number(self) -> Optional[int]:
        """1-based index for the three interactive steps"""
        return _STEP_NUMBERS.get(self)

    @property
    def is_interactive(self) -> bool:
        return self in _STEP_NUMBERS


_STEP_NUMBERS = {
    CheckoutStep.PERSONAL_DATA: 1,
    CheckoutStep.SHIPPING_ADDRESS: 2,
    CheckoutStep.PAYMENT_METHOD: 3,
}

INTERACTIVE_STEPS = (
    CheckoutStep.PERSONAL_DATA,
    CheckoutStep.SHIPPING_ADDRESS,
    CheckoutStep.PAYMENT_METHOD,
)


class PaymentMethod(str, Enum):
    """Payment option as shown to the shopper"""
    MERCADOPAGO = "mercadopago"
    DLOCAL = "dlocal"
    SIMULATION = "simulation"


PROVIDER_BY_METHOD: dict[PaymentMethod, PaymentProvider] = {
    PaymentMethod.MERCADOPAGO: PaymentProvider.MERCADOPAGO,
    PaymentMethod.DLOCAL: PaymentProvider.DLOCAL_GO,
    PaymentMethod.SIMULATION: PaymentProvider.SIMULATION,
}

# Adding a PaymentMethod without a provider fails at import time
if set(PROVIDER_BY_METHOD) != set(PaymentMethod):
    raise RuntimeError(f"Unmapped payment methods: {set(PaymentMethod) - set(PROVIDER_BY_METHOD)}")


def provider_for(method: PaymentMethod) -> PaymentProvider:
    return PROVIDER_BY_METHOD[PaymentMethod(method)]


@dataclass
class PersonalData:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()


@dataclass
class ShippingAddressDraft:
    street: str = ""
    number: str = ""
    apartment: str = ""
    city: str = ""
    department: str = ""
    postal_code: str = ""
    notes: str = ""


@dataclass
class CheckoutDraft:
    """Form state collected across the three checkout steps"""
    personal: PersonalData = field(default_factory=PersonalData)
    address: ShippingAddressDraft = field(default_factory=ShippingAddressDraft)
    payment_method: Optional[PaymentMethod] = None


PERSONAL_FIELDS = tuple(f.name for f in fields(PersonalData))
ADDRESS_FIELDS = tuple(f.name for f in fields(ShippingAddressDraft))
