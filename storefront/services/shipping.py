"""
Shipping cost resolution

Looks up the per-department shipping rate from the backend. Lookups are
cached for the life of the storefront session and a lookup that fails
falls back to the flat default cost instead of blocking checkout.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from ..core.constants import is_department
from ..core.exceptions import BackendError, BackendUnavailableError, InvalidDepartmentError
from ..core.money import Amount, to_money
from ..models.api import ShippingQuote
from .backend_client import BackendClient

logger = logging.getLogger(__name__)


class ShippingCostResolver:
    """
    Resolves shipping cost by destination department.

    on_department_changed() is the hook the checkout form fires when the
    department field is committed. It starts a background lookup; a newer
    department cancels the older lookup so current_cost only ever reflects
    the latest choice.
    """

    def __init__(self, client: BackendClient, default_cost: Amount):
        self._client = client
        self.default_cost = to_money(default_cost)
        self._quotes: dict[str, ShippingQuote] = {}
        self._department: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None
        self.current_cost: Optional[Decimal] = None

    @property
    def department(self) -> Optional[str]:
        return self._department

    @property
    def is_calculating(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def cached_quote(self, department: str) -> Optional[ShippingQuote]:
        return self._quotes.get(department)

    async def resolve(self, department: str) -> ShippingQuote:
        """
        Get the shipping quote for a department.

        Raises:
            InvalidDepartmentError: department is not a known region
            BackendError / BackendUnavailableError: lookup failed
        """
        if not is_department(department):
            raise InvalidDepartmentError(department)

        quote = self._quotes.get(department)
        if quote is None:
            quote = await self._client.calculate_shipping(department)
            self._quotes[department] = quote
            logger.debug(f"Shipping to {department}: {quote.cost}")
        return quote

    async def cost_for(self, department: str) -> Decimal:
        """Shipping cost for a department, or the default cost when the lookup fails"""
        try:
            quote = await self.resolve(department)
        except (BackendError, BackendUnavailableError, ValidationError) as e:
            logger.warning(
                f"Shipping lookup for {department} failed, using default cost "
                f"{self.default_cost}: {e}"
            )
            return self.default_cost
        return to_money(quote.cost)

    def on_department_changed(self, department: str) -> Optional[asyncio.Task]:
        """
        Refresh the shipping estimate for a newly committed department.

        Must be called from a running event loop. Returns the background
        lookup task, or None when no network lookup was needed.
        """
        if department == self._department:
            return None

        self._department = department
        self._cancel_pending()

        if not department or not is_department(department):
            self.current_cost = None
            return None

        quote = self._quotes.get(department)
        if quote is not None:
            self.current_cost = to_money(quote.cost)
            return None

        self.current_cost = None
        self._pending = asyncio.create_task(self._refresh(department))
        return self._pending

    async def settled_cost(self) -> Optional[Decimal]:
        """Resolve the cost for the current department again before showing totals"""
        department = self._department
        if not department or not is_department(department):
            return None

        cost = await self.cost_for(department)
        if department == self._department:
            self.current_cost = cost
        return cost

    async def _refresh(self, department: str) -> None:
        cost = await self.cost_for(department)
        if department == self._department:
            self.current_cost = cost

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            logger.debug("Superseding in-flight shipping lookup")
            self._pending.cancel()
        self._pending = None

    def reset(self) -> None:
        """Forget the chosen department for a new checkout; cached quotes are kept"""
        self._cancel_pending()
        self._department = None
        self.current_cost = None

    def close(self) -> None:
        self._cancel_pending()
