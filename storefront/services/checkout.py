"""
Checkout state machine

Three interactive steps (personal data, shipping address, payment method)
followed by submission. Each forward move is gated by the current step's
validation; errors are reported per field.
"""

import logging
import re
from typing import Optional

from ..core.constants import URUGUAY_CITIES, is_department
from ..core.exceptions import (
    BackendError,
    BackendUnavailableError,
    CheckoutInProgressError,
    CheckoutValidationError,
    OrderError,
)
from ..core.money import Amount, to_money
from ..models.api import StoreSettings, UserProfile
from ..models.checkout import (
    ADDRESS_FIELDS,
    PERSONAL_FIELDS,
    CheckoutDraft,
    CheckoutStep,
    PaymentMethod,
    PersonalData,
    ShippingAddressDraft,
)
from .cart_store import CartStore
from .coupons import CouponState
from .orchestrator import GENERIC_ORDER_ERROR, OrderOrchestrator, PaymentRedirect
from .pricing import CartTotals
from .shipping import ShippingCostResolver

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ERROR_MESSAGES = {
    "first_name": "El nombre es obligatorio",
    "last_name": "El apellido es obligatorio",
    "email": "El email es obligatorio",
    "email_format": "Ingresa un email valido",
    "phone": "El telefono es obligatorio",
    "street": "La calle es obligatoria",
    "number": "El numero es obligatorio",
    "city": "La ciudad es obligatoria",
    "department": "Selecciona un departamento",
    "postal_code": "El codigo postal es obligatorio",
    "payment_method": "Selecciona un metodo de pago",
    "payment_method_disabled": "El metodo de pago seleccionado no esta disponible",
}


def validate_personal_data(personal: PersonalData) -> dict[str, str]:
    errors = {}
    if not personal.first_name.strip():
        errors["first_name"] = ERROR_MESSAGES["first_name"]
    if not personal.last_name.strip():
        errors["last_name"] = ERROR_MESSAGES["last_name"]
    if not personal.email.strip():
        errors["email"] = ERROR_MESSAGES["email"]
    elif not EMAIL_PATTERN.match(personal.email.strip()):
        errors["email"] = ERROR_MESSAGES["email_format"]
    if not personal.phone.strip():
        errors["phone"] = ERROR_MESSAGES["phone"]
    return errors


def validate_shipping_address(address: ShippingAddressDraft) -> dict[str, str]:
    errors = {}
    for name in ("street", "number", "city"):
        if not getattr(address, name).strip():
            errors[name] = ERROR_MESSAGES[name]
    if not is_department(address.department):
        errors["department"] = ERROR_MESSAGES["department"]
    if not address.postal_code.strip():
        errors["postal_code"] = ERROR_MESSAGES["postal_code"]
    return errors


def validate_payment_method(
    method: Optional[PaymentMethod],
    enabled: frozenset,
) -> dict[str, str]:
    if method is None:
        return {"payment_method": ERROR_MESSAGES["payment_method"]}
    if method not in enabled:
        return {"payment_method": ERROR_MESSAGES["payment_method_disabled"]}
    return {}


def enabled_payment_methods(store: StoreSettings, allow_simulation: bool) -> frozenset:
    """Payment methods the store currently accepts"""
    methods = set()
    if store.mp_enabled:
        methods.add(PaymentMethod.MERCADOPAGO)
    if store.dl_enabled:
        methods.add(PaymentMethod.DLOCAL)
    if allow_simulation:
        methods.add(PaymentMethod.SIMULATION)
    return frozenset(methods)


class CheckoutStateMachine:
    """
    Drives one checkout from personal data to the payment redirect.

    Field setters are the only way to change the draft. Once submit() has
    started, the draft is read-only and further submits are refused until
    the orchestration finishes.
    """

    def __init__(
        self,
        cart: CartStore,
        coupons: CouponState,
        shipping: ShippingCostResolver,
        orchestrator: OrderOrchestrator,
        store_settings_loader,
        free_shipping_threshold: Amount,
        allow_simulation: bool = False,
    ):
        self._cart = cart
        self._coupons = coupons
        self._shipping = shipping
        self._orchestrator = orchestrator
        self._load_store_settings = store_settings_loader
        self.free_shipping_threshold = to_money(free_shipping_threshold)
        self.allow_simulation = allow_simulation

        self.draft = CheckoutDraft()
        self.step = CheckoutStep.PERSONAL_DATA
        self.errors: dict[str, str] = {}
        self.enabled_methods: frozenset = frozenset()
        self.submit_error: Optional[str] = None
        self.redirect: Optional[PaymentRedirect] = None
        self.history: list[CheckoutStep] = [self.step]
        self._in_flight = False

    # ==================== State ====================

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_editable(self) -> bool:
        return self.step.is_interactive and not self._in_flight

    def _transition(self, step: CheckoutStep) -> None:
        logger.debug(f"Checkout {self.step.value} -> {step.value}")
        self.step = step
        self.history.append(step)

    def _ensure_editable(self) -> None:
        if not self.is_editable:
            raise CheckoutInProgressError(f"Checkout is {self.step.value}")

    # ==================== Field setters ====================

    def prefill(self, profile: UserProfile) -> None:
        """Fill empty personal fields from the shopper's profile"""
        personal = self.draft.personal
        personal.first_name = personal.first_name or profile.first_name or ""
        personal.last_name = personal.last_name or profile.last_name or ""
        personal.email = personal.email or profile.email or ""
        personal.phone = personal.phone or profile.phone or ""

    def set_personal_field(self, name: str, value: str) -> None:
        self._ensure_editable()
        if name not in PERSONAL_FIELDS:
            raise KeyError(name)
        setattr(self.draft.personal, name, value)
        self.errors.pop(name, None)

    def set_address_field(self, name: str, value: str) -> None:
        """
        Set a shipping address field.

        Committing a different department resets the city when it does not
        belong to the new department and fires the shipping lookup without
        waiting for it.
        """
        self._ensure_editable()
        if name not in ADDRESS_FIELDS:
            raise KeyError(name)

        address = self.draft.address
        changed = getattr(address, name) != value
        setattr(address, name, value)
        self.errors.pop(name, None)

        if name == "department" and changed:
            if address.city not in URUGUAY_CITIES.get(value, []):
                address.city = ""
            self._shipping.on_department_changed(value)

    async def refresh_payment_methods(self) -> frozenset:
        """Reload which payment methods the store accepts right now"""
        store = await self._load_store_settings()
        self.enabled_methods = enabled_payment_methods(store, self.allow_simulation)

        selected = self.draft.payment_method
        if selected is not None and selected not in self.enabled_methods:
            logger.info(f"Payment method {selected.value} was disabled, clearing selection")
            self.draft.payment_method = None
        return self.enabled_methods

    async def select_payment_method(self, method: PaymentMethod) -> bool:
        self._ensure_editable()
        method = PaymentMethod(method)
        await self.refresh_payment_methods()

        errors = validate_payment_method(method, self.enabled_methods)
        if errors:
            self.errors.update(errors)
            return False

        self.draft.payment_method = method
        self.errors.pop("payment_method", None)
        return True

    # ==================== Transitions ====================

    def validate_step(self, step: CheckoutStep) -> dict[str, str]:
        if step == CheckoutStep.PERSONAL_DATA:
            return validate_personal_data(self.draft.personal)
        if step == CheckoutStep.SHIPPING_ADDRESS:
            return validate_shipping_address(self.draft.address)
        if step == CheckoutStep.PAYMENT_METHOD:
            return validate_payment_method(self.draft.payment_method, self.enabled_methods)
        return {}

    def next_step(self) -> bool:
        """
        Validate the current step and move forward when it passes.

        On the payment step this only validates; submit() moves on from there.
        """
        self._ensure_editable()
        errors = self.validate_step(self.step)
        self.errors = errors
        if errors:
            return False

        if self.step == CheckoutStep.PERSONAL_DATA:
            self._transition(CheckoutStep.SHIPPING_ADDRESS)
        elif self.step == CheckoutStep.SHIPPING_ADDRESS:
            self._transition(CheckoutStep.PAYMENT_METHOD)
        return True

    def previous_step(self) -> bool:
        self._ensure_editable()
        if self.step == CheckoutStep.SHIPPING_ADDRESS:
            target = CheckoutStep.PERSONAL_DATA
        elif self.step == CheckoutStep.PAYMENT_METHOD:
            target = CheckoutStep.SHIPPING_ADDRESS
        else:
            return False

        self.errors = {}
        self._transition(target)
        return True

    # ==================== Totals ====================

    def current_totals(self) -> CartTotals:
        """Totals with whatever shipping estimate is known right now"""
        return self._cart.totals(
            self._shipping.current_cost,
            self._coupons.discount_for(self._cart.subtotal),
            self.free_shipping_threshold,
        )

    async def summary(self) -> CartTotals:
        """Totals after resolving shipping and the applied coupon again"""
        cost = await self._shipping.settled_cost()
        subtotal = self._cart.subtotal
        await self._coupons.revalidate(subtotal)
        return self._cart.totals(cost, self._coupons.discount_for(subtotal), self.free_shipping_threshold)

    # ==================== Submission ====================

    async def submit(self) -> PaymentRedirect:
        """
        Place the order and return the payment redirect.

        Raises:
            CheckoutInProgressError: a submission is in flight or already done
            CheckoutValidationError: a step is invalid; the machine moves to
                the first invalid step
            OrderError: orchestration failed; the machine is back on the
                payment step with submit_error set
        """
        if self._in_flight or self.step in (CheckoutStep.SUBMITTING, CheckoutStep.COMPLETED):
            raise CheckoutInProgressError("Order submission already started")
        if self.step != CheckoutStep.PAYMENT_METHOD:
            raise CheckoutValidationError({"step": "Completa los pasos anteriores"})

        self._in_flight = True
        try:
            self.submit_error = None
            try:
                await self.refresh_payment_methods()
            except (BackendError, BackendUnavailableError) as e:
                logger.error(f"Could not load store settings: {e}")
                self.submit_error = GENERIC_ORDER_ERROR
                raise OrderError(GENERIC_ORDER_ERROR, stage="settings") from e

            self._check_all_steps()
            await self._coupons.revalidate(self._cart.subtotal)

            self._transition(CheckoutStep.SUBMITTING)
            try:
                redirect = await self._orchestrator.submit(self.draft, coupon_code=self._coupons.code)
            except OrderError as e:
                self._return_to_payment(e.user_message)
                raise
            except Exception as e:
                logger.error(f"Order submission failed: {e}", exc_info=True)
                self._return_to_payment(GENERIC_ORDER_ERROR)
                raise OrderError(GENERIC_ORDER_ERROR, stage="unknown") from e

            self.redirect = redirect
            self._cart.invalidate()
            self._transition(CheckoutStep.COMPLETED)
            return redirect
        finally:
            self._in_flight = False
            if self.step == CheckoutStep.SUBMITTING:
                # Cancelled while the orchestrator was running
                self._return_to_payment(GENERIC_ORDER_ERROR)

    def _return_to_payment(self, message: str) -> None:
        self._transition(CheckoutStep.FAILED)
        self.submit_error = message
        self._transition(CheckoutStep.PAYMENT_METHOD)

    def _check_all_steps(self) -> None:
        for step in (
            CheckoutStep.PERSONAL_DATA,
            CheckoutStep.SHIPPING_ADDRESS,
            CheckoutStep.PAYMENT_METHOD,
        ):
            errors = self.validate_step(step)
            if errors:
                self.errors = errors
                if step != self.step:
                    self._transition(step)
                raise CheckoutValidationError(errors)
