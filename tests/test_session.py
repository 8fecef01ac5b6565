import unittest
from datetime import timedelta
from decimal import Decimal

from storefront.core.config import Settings
from storefront.core.session import SessionManager

from .fakes import BASE_URL, FakeBackend, cart_item, cart_payload


class TestSessionManager(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.backend = FakeBackend()
        self.backend.on("GET", "/cart", body=cart_payload(cart_item("a", price=1000, quantity=1)))
        self.backend.on("POST", "/shipping/calculate", body={"cost": 250})
        self.manager = SessionManager(
            settings=Settings(environment="development", api_base_url=BASE_URL),
            client_factory=self.backend.client,
        )

    async def asyncTearDown(self):
        await self.manager.close_all()

    async def test_sessions_do_not_share_state(self):
        first = self.manager.create_session("token-1")
        second = self.manager.create_session("token-2")

        self.assertIsNot(first.cart, second.cart)
        self.assertIsNot(first.shipping, second.shipping)
        self.assertEqual(first.client.access_token, "token-1")

    async def test_new_checkout_starts_without_shipping_estimate(self):
        session = self.manager.create_session("token")
        await session.cart.load()
        machine = session.start_checkout()
        machine.set_address_field("department", "Canelones")
        self.assertEqual(await session.shipping.settled_cost(), Decimal("250.00"))

        fresh = session.start_checkout()
        totals = fresh.current_totals()

        self.assertEqual(fresh.draft.address.department, "")
        self.assertIsNone(session.shipping.department)
        self.assertFalse(totals.shipping_known)
        self.assertEqual(totals.total, Decimal("1000.00"))
        self.assertFalse((await fresh.summary()).shipping_known)
        self.assertIsNotNone(session.shipping.cached_quote("Canelones"))

    async def test_delete_session(self):
        session = self.manager.create_session()

        self.assertTrue(await self.manager.delete_session(session.session_id))
        self.assertIsNone(self.manager.get_session(session.session_id))
        self.assertFalse(await self.manager.delete_session(session.session_id))

    async def test_cleanup_old_sessions(self):
        session = self.manager.create_session()
        session.updated_at -= timedelta(hours=25)
        self.manager.create_session()

        self.assertEqual(await self.manager.cleanup_old_sessions(), 1)
        self.assertEqual(len(self.manager.sessions), 1)


if __name__ == "__main__":
    unittest.main()
