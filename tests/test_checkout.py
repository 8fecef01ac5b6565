import asyncio
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import httpx

from storefront.core.exceptions import CheckoutInProgressError, CheckoutValidationError, OrderError
from storefront.models.api import PaymentProvider, StoreSettings, UserProfile
from storefront.models.checkout import CheckoutStep, PaymentMethod
from storefront.services.cart_store import CartStore
from storefront.services.checkout import ERROR_MESSAGES, CheckoutStateMachine
from storefront.services.coupons import CouponState, CouponValidator
from storefront.services.orchestrator import GENERIC_ORDER_ERROR, OrderOrchestrator, PaymentRedirect
from storefront.services.shipping import ShippingCostResolver

from .fakes import FakeBackend, cart_item, cart_payload, order_routes


def fill_personal(machine, **overrides):
    values = {
        "first_name": "Ana",
        "last_name": "Perez",
        "email": "ana@example.com",
        "phone": "099123456",
    }
    values.update(overrides)
    for name, value in values.items():
        machine.set_personal_field(name, value)


def fill_address(machine, department="Montevideo", city="Montevideo"):
    machine.set_address_field("street", "18 de Julio")
    machine.set_address_field("number", "1234")
    machine.set_address_field("department", department)
    machine.set_address_field("city", city)
    machine.set_address_field("postal_code", "11200")


class CheckoutTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend()
        self.backend.on("GET", "/cart", body=cart_payload(cart_item("a", price=1000, quantity=2)))
        self.backend.on("GET", "/settings", body={"mpEnabled": True, "dlEnabled": True})
        self.backend.on("POST", "/shipping/calculate", body={"cost": 250, "zoneName": "Metropolitana"})
        self.client = self.backend.client(access_token="t")
        self.cart = CartStore(self.client)
        self.coupons = CouponState(CouponValidator(self.client))
        self.shipping = ShippingCostResolver(self.client, Decimal("290"))

    async def asyncTearDown(self):
        self.shipping.close()
        await self.client.close()

    def make_machine(self, orchestrator=None, shipping=None, settings_loader=None, allow_simulation=False):
        return CheckoutStateMachine(
            cart=self.cart,
            coupons=self.coupons,
            shipping=shipping or self.shipping,
            orchestrator=orchestrator or OrderOrchestrator(self.client),
            store_settings_loader=settings_loader or self.client.get_store_settings,
            free_shipping_threshold=Decimal("3000"),
            allow_simulation=allow_simulation,
        )

    async def advance_to_payment(self, machine, method=PaymentMethod.MERCADOPAGO):
        fill_personal(machine)
        self.assertTrue(machine.next_step())
        fill_address(machine)
        self.assertTrue(machine.next_step())
        self.assertTrue(await machine.select_payment_method(method))


class TestStepNavigation(CheckoutTestCase):

    async def test_invalid_email_keeps_first_step(self):
        machine = self.make_machine()
        fill_personal(machine, email="not-an-email")

        self.assertFalse(machine.next_step())

        self.assertEqual(machine.step, CheckoutStep.PERSONAL_DATA)
        self.assertEqual(machine.errors, {"email": ERROR_MESSAGES["email_format"]})
        self.assertFalse(machine.previous_step())
        with self.assertRaises(CheckoutValidationError):
            await machine.submit()
        self.assertEqual(machine.step, CheckoutStep.PERSONAL_DATA)

    async def test_empty_personal_fields(self):
        machine = self.make_machine()

        self.assertFalse(machine.next_step())

        self.assertEqual(machine.errors, {
            "first_name": ERROR_MESSAGES["first_name"],
            "last_name": ERROR_MESSAGES["last_name"],
            "email": ERROR_MESSAGES["email"],
            "phone": ERROR_MESSAGES["phone"],
        })

    async def test_whitespace_only_values_are_empty(self):
        machine = self.make_machine()
        fill_personal(machine, first_name="   ")

        self.assertFalse(machine.next_step())
        self.assertIn("first_name", machine.errors)

    async def test_empty_address_fields(self):
        machine = self.make_machine()
        fill_personal(machine)
        machine.next_step()

        self.assertFalse(machine.next_step())

        self.assertEqual(set(machine.errors), {"street", "number", "city", "department", "postal_code"})
        self.assertEqual(machine.step, CheckoutStep.SHIPPING_ADDRESS)

    async def test_unknown_department_is_rejected(self):
        machine = self.make_machine()
        fill_personal(machine)
        machine.next_step()
        fill_address(machine, department="Buenos Aires", city="La Plata")

        self.assertFalse(machine.next_step())
        self.assertEqual(machine.errors, {"department": ERROR_MESSAGES["department"]})

    async def test_editing_a_field_clears_its_error(self):
        machine = self.make_machine()
        machine.next_step()

        machine.set_personal_field("first_name", "Ana")

        self.assertNotIn("first_name", machine.errors)
        self.assertIn("last_name", machine.errors)

    async def test_back_keeps_data_and_clears_errors(self):
        machine = self.make_machine()
        fill_personal(machine)
        machine.next_step()
        machine.next_step()
        self.assertTrue(machine.errors)

        self.assertTrue(machine.previous_step())

        self.assertEqual(machine.step, CheckoutStep.PERSONAL_DATA)
        self.assertEqual(machine.errors, {})
        self.assertEqual(machine.draft.personal.email, "ana@example.com")

    async def test_payment_step_next_only_validates(self):
        machine = self.make_machine()
        await self.advance_to_payment(machine)

        self.assertTrue(machine.next_step())
        self.assertEqual(machine.step, CheckoutStep.PAYMENT_METHOD)

    async def test_unknown_field(self):
        machine = self.make_machine()

        with self.assertRaises(KeyError):
            machine.set_address_field("country", "UY")

    async def test_prefill_keeps_typed_values(self):
        machine = self.make_machine()
        machine.set_personal_field("first_name", "Ana Maria")

        machine.prefill(UserProfile(id="u1", email="ana@example.com", first_name="Ana", phone="099"))

        self.assertEqual(machine.draft.personal.first_name, "Ana Maria")
        self.assertEqual(machine.draft.personal.email, "ana@example.com")
        self.assertEqual(machine.draft.personal.last_name, "")


class TestDepartmentHook(CheckoutTestCase):

    async def test_department_change_fires_lookup_once(self):
        shipping = Mock()
        machine = self.make_machine(shipping=shipping)

        machine.set_address_field("department", "Canelones")
        machine.set_address_field("department", "Canelones")

        shipping.on_department_changed.assert_called_once_with("Canelones")

    async def test_department_change_resets_foreign_city(self):
        machine = self.make_machine(shipping=Mock())
        fill_address(machine, department="Montevideo", city="Montevideo")

        machine.set_address_field("department", "Canelones")
        self.assertEqual(machine.draft.address.city, "")

    async def test_department_change_keeps_matching_city(self):
        machine = self.make_machine(shipping=Mock())
        machine.set_address_field("city", "Pando")

        machine.set_address_field("department", "Canelones")
        self.assertEqual(machine.draft.address.city, "Pando")

    async def test_summary_uses_resolved_shipping(self):
        machine = self.make_machine()
        await self.cart.load()
        fill_address(machine)

        totals = await machine.summary()

        self.assertEqual(totals.subtotal, Decimal("2000.00"))
        self.assertEqual(totals.shipping_cost, Decimal("250.00"))
        self.assertEqual(totals.total, Decimal("2250.00"))

    async def test_totals_before_department_leave_shipping_unknown(self):
        machine = self.make_machine()
        await self.cart.load()

        totals = machine.current_totals()

        self.assertFalse(totals.shipping_known)
        self.assertEqual(totals.total, Decimal("2000.00"))


class TestPaymentMethods(CheckoutTestCase):

    async def test_disabled_method_is_refused(self):
        self.backend.on("GET", "/settings", body={"mpEnabled": False, "dlEnabled": True})
        machine = self.make_machine()

        self.assertFalse(await machine.select_payment_method(PaymentMethod.MERCADOPAGO))

        self.assertIsNone(machine.draft.payment_method)
        self.assertEqual(machine.errors["payment_method"], ERROR_MESSAGES["payment_method_disabled"])

    async def test_simulation_only_when_allowed(self):
        machine = self.make_machine()
        self.assertFalse(await machine.select_payment_method(PaymentMethod.SIMULATION))

        machine = self.make_machine(allow_simulation=True)
        self.assertTrue(await machine.select_payment_method(PaymentMethod.SIMULATION))

    async def test_stale_selection_is_cleared(self):
        machine = self.make_machine()
        self.assertTrue(await machine.select_payment_method(PaymentMethod.DLOCAL))

        self.backend.on("GET", "/settings", body={"mpEnabled": True, "dlEnabled": False})
        await machine.refresh_payment_methods()

        self.assertIsNone(machine.draft.payment_method)
        self.assertEqual(machine.enabled_methods, frozenset({PaymentMethod.MERCADOPAGO}))

    async def test_method_disabled_before_submit(self):
        machine = self.make_machine()
        await self.advance_to_payment(machine, PaymentMethod.DLOCAL)
        self.backend.on("GET", "/settings", body={"mpEnabled": True, "dlEnabled": False})

        with self.assertRaises(CheckoutValidationError) as ctx:
            await machine.submit()

        self.assertEqual(ctx.exception.errors, {"payment_method": ERROR_MESSAGES["payment_method"]})
        self.assertEqual(self.backend.count("POST", "/users/me/addresses"), 0)


class TestSubmit(CheckoutTestCase):

    async def test_successful_submit(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        machine = self.make_machine()
        await self.cart.load()
        await self.advance_to_payment(machine)

        redirect = await machine.submit()

        self.assertEqual(redirect.url, "https://mp.example/checkout")
        self.assertEqual(machine.redirect, redirect)
        self.assertEqual(machine.step, CheckoutStep.COMPLETED)
        self.assertTrue(self.cart.is_stale)
        self.assertIn(CheckoutStep.SUBMITTING, machine.history)

    async def test_completed_checkout_refuses_second_submit(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        machine = self.make_machine()
        await self.advance_to_payment(machine)
        await machine.submit()

        with self.assertRaises(CheckoutInProgressError):
            await machine.submit()
        with self.assertRaises(CheckoutInProgressError):
            machine.set_personal_field("email", "other@example.com")
        self.assertEqual(self.backend.count("POST", "/orders"), 1)

    async def test_concurrent_submit_is_refused(self):
        release = asyncio.Event()

        async def slow_submit(draft, coupon_code=None):
            await release.wait()
            return PaymentRedirect(
                url="https://mp.example/checkout",
                provider=PaymentProvider.MERCADOPAGO,
                order_id="order-1",
                address_id="addr-1",
            )

        orchestrator = Mock()
        orchestrator.submit = AsyncMock(side_effect=slow_submit)
        loader = AsyncMock(return_value=StoreSettings(mp_enabled=True))
        machine = self.make_machine(orchestrator=orchestrator, settings_loader=loader)
        await self.advance_to_payment(machine)

        first = asyncio.create_task(machine.submit())
        for _ in range(10):
            if machine.step == CheckoutStep.SUBMITTING:
                break
            await asyncio.sleep(0)

        self.assertTrue(machine.in_flight)
        with self.assertRaises(CheckoutInProgressError):
            await machine.submit()
        with self.assertRaises(CheckoutInProgressError):
            machine.set_address_field("street", "Rivera")

        release.set()
        await first
        orchestrator.submit.assert_awaited_once()
        self.assertFalse(machine.in_flight)

    async def test_order_failure_returns_to_payment_step(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        attempts = []

        def create_order(request):
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(409, json={"statusCode": 409, "message": "Stock insuficiente"})
            return httpx.Response(201, json={"id": "order-2", "orderNumber": "BM-0002"})

        self.backend.on("POST", "/orders", handler=create_order)
        machine = self.make_machine()
        await self.advance_to_payment(machine)

        with self.assertRaises(OrderError):
            await machine.submit()

        self.assertEqual(machine.step, CheckoutStep.PAYMENT_METHOD)
        self.assertEqual(machine.submit_error, "Stock insuficiente")
        self.assertIn(CheckoutStep.FAILED, machine.history)
        self.assertFalse(machine.in_flight)

        redirect = await machine.submit()

        self.assertEqual(self.backend.count("POST", "/users/me/addresses"), 2)
        self.assertEqual(redirect.address_id, "addr-2")
        self.assertEqual(redirect.order_id, "order-2")
        self.assertIsNone(machine.submit_error)
        self.assertEqual(machine.step, CheckoutStep.COMPLETED)

    async def test_unexpected_failure_returns_to_payment_step(self):
        orchestrator = Mock()
        orchestrator.submit = AsyncMock(side_effect=[
            RuntimeError("connection pool exhausted"),
            PaymentRedirect(
                url="https://mp.example/checkout",
                provider=PaymentProvider.MERCADOPAGO,
                order_id="order-2",
                address_id="addr-2",
            ),
        ])
        machine = self.make_machine(orchestrator=orchestrator)
        await self.advance_to_payment(machine)

        with self.assertRaises(OrderError) as ctx:
            await machine.submit()

        self.assertEqual(ctx.exception.user_message, GENERIC_ORDER_ERROR)
        self.assertEqual(machine.step, CheckoutStep.PAYMENT_METHOD)
        self.assertEqual(machine.submit_error, GENERIC_ORDER_ERROR)
        self.assertIn(CheckoutStep.FAILED, machine.history)

        redirect = await machine.submit()
        self.assertEqual(redirect.order_id, "order-2")
        self.assertEqual(machine.step, CheckoutStep.COMPLETED)

    async def test_non_json_order_answer_allows_retry(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        self.backend.on("POST", "/orders", handler=lambda request: httpx.Response(
            200, text="<html>maintenance</html>", headers={"Content-Type": "text/html"},
        ))
        machine = self.make_machine()
        await self.advance_to_payment(machine)

        with self.assertRaises(OrderError) as ctx:
            await machine.submit()

        self.assertEqual(ctx.exception.stage, "order")
        self.assertEqual(machine.submit_error, GENERIC_ORDER_ERROR)
        self.assertEqual(machine.step, CheckoutStep.PAYMENT_METHOD)
        self.assertFalse(machine.in_flight)

        order_routes(self.backend, initPoint="https://mp.example/checkout")
        redirect = await machine.submit()
        self.assertEqual(redirect.url, "https://mp.example/checkout")
        self.assertEqual(self.backend.count("POST", "/users/me/addresses"), 2)

    async def test_settings_failure_aborts_submit(self):
        machine = self.make_machine()
        await self.advance_to_payment(machine)
        self.backend.on("GET", "/settings", status=503)

        with self.assertRaises(OrderError) as ctx:
            await machine.submit()

        self.assertEqual(ctx.exception.stage, "settings")
        self.assertEqual(machine.step, CheckoutStep.PAYMENT_METHOD)
        self.assertEqual(self.backend.count("POST", "/users/me/addresses"), 0)

    async def test_submit_revalidates_earlier_steps(self):
        machine = self.make_machine()
        await self.advance_to_payment(machine)
        machine.set_personal_field("email", "")

        with self.assertRaises(CheckoutValidationError) as ctx:
            await machine.submit()

        self.assertEqual(ctx.exception.errors, {"email": ERROR_MESSAGES["email"]})
        self.assertEqual(machine.step, CheckoutStep.PERSONAL_DATA)

    async def test_applied_coupon_is_sent_with_order(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        self.backend.on("POST", "/coupons/validate", body={"code": "SAVE10", "discount": 200})
        await self.cart.load()
        await self.coupons.apply("SAVE10", 2000)
        machine = self.make_machine()
        await self.advance_to_payment(machine)

        await machine.submit()

        self.assertEqual(self.backend.bodies("POST", "/orders")[0]["couponCode"], "SAVE10")


class TestCouponRevalidation(CheckoutTestCase):

    async def asyncSetUp(self):
        self.backend.on("POST", "/coupons/validate", body={"code": "SAVE10", "discount": 200})
        await self.cart.load()
        await self.coupons.apply("SAVE10", self.cart.subtotal)
        self.backend.on("GET", "/cart", body=cart_payload(cart_item("a", price=1000, quantity=1)))
        self.backend.on("POST", "/coupons/validate", status=400, body={
            "statusCode": 400, "message": "Minimum not met", "error": "MINIMUM_NOT_MET",
        })
        await self.cart.load(force=True)

    async def test_changed_subtotal_hides_old_discount(self):
        machine = self.make_machine()

        totals = machine.current_totals()

        self.assertEqual(totals.subtotal, Decimal("1000.00"))
        self.assertEqual(totals.discount, Decimal("0.00"))

    async def test_summary_drops_rejected_coupon(self):
        machine = self.make_machine()

        totals = await machine.summary()

        self.assertEqual(totals.discount, Decimal("0.00"))
        self.assertIsNone(self.coupons.applied)
        self.assertEqual(self.backend.bodies("POST", "/coupons/validate")[-1], {"code": "SAVE10", "subtotal": 1000.0})

    async def test_submit_omits_rejected_coupon(self):
        order_routes(self.backend, initPoint="https://mp.example/checkout")
        machine = self.make_machine()
        await self.advance_to_payment(machine)

        await machine.submit()

        self.assertNotIn("couponCode", self.backend.bodies("POST", "/orders")[0])


if __name__ == "__main__":
    unittest.main()
