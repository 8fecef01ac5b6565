"""Storefront session management"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..models.api import UserProfile
from ..services.backend_client import BackendClient
from ..services.cart_store import CartStore
from ..services.checkout import CheckoutStateMachine
from ..services.coupons import CouponState, CouponValidator
from ..services.orchestrator import OrderOrchestrator
from ..services.shipping import ShippingCostResolver
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Optional[str]], BackendClient]


@dataclass
class StorefrontSession:
    """
    State owned by one shopper's browser session.

    Holds the cart cache, the applied coupon, the shipping resolver and the
    active checkout. Nothing here is shared between sessions.
    """
    session_id: str
    created_at: datetime
    updated_at: datetime
    settings: Settings
    client: BackendClient
    cart: CartStore
    coupons: CouponState
    shipping: ShippingCostResolver
    orchestrator: OrderOrchestrator
    checkout: Optional[CheckoutStateMachine] = None
    profile: Optional[UserProfile] = None

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def start_checkout(self) -> CheckoutStateMachine:
        """Begin a new checkout, discarding any previous draft and its shipping estimate"""
        self.shipping.reset()
        self.checkout = CheckoutStateMachine(
            cart=self.cart,
            coupons=self.coupons,
            shipping=self.shipping,
            orchestrator=self.orchestrator,
            store_settings_loader=self.client.get_store_settings,
            free_shipping_threshold=self.settings.free_shipping_threshold,
            allow_simulation=not self.settings.is_production,
        )
        if self.profile:
            self.checkout.prefill(self.profile)
        self.touch()
        return self.checkout

    async def close(self) -> None:
        self.shipping.close()
        await self.client.close()


class SessionManager:
    """Manages storefront sessions"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings or get_settings()
        self._client_factory = client_factory or self._default_client
        self.sessions: dict[str, StorefrontSession] = {}

    def _default_client(self, access_token: Optional[str]) -> BackendClient:
        return BackendClient(
            api_base_url=self.settings.api_base_url,
            access_token=access_token,
            timeout=self.settings.api_timeout,
        )

    def create_session(self, access_token: Optional[str] = None) -> StorefrontSession:
        """Create a new session"""
        now = datetime.utcnow()
        client = self._client_factory(access_token)
        coupons = CouponState(CouponValidator(client))

        session = StorefrontSession(
            session_id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            settings=self.settings,
            client=client,
            cart=CartStore(client),
            coupons=coupons,
            shipping=ShippingCostResolver(client, self.settings.base_shipping_cost),
            orchestrator=OrderOrchestrator(client, prefer_sandbox=not self.settings.is_production),
        )
        self.sessions[session.session_id] = session
        logger.info(f"Session {session.session_id} created")
        return session

    def get_session(self, session_id: str) -> Optional[StorefrontSession]:
        """Get session by ID"""
        return self.sessions.get(session_id)

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session and close its backend client"""
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def cleanup_old_sessions(self, max_age_hours: Optional[int] = None) -> int:
        """Remove sessions older than max_age_hours"""
        max_age_hours = max_age_hours or self.settings.session_max_age_hours
        now = datetime.utcnow()
        old_sessions = [
            sid for sid, session in self.sessions.items()
            if (now - session.updated_at).total_seconds() > max_age_hours * 3600
        ]
        for sid in old_sessions:
            await self.delete_session(sid)
        return len(old_sessions)

    async def close_all(self) -> None:
        for sid in list(self.sessions):
            await self.delete_session(sid)


# Singleton instance
session_manager = SessionManager()
