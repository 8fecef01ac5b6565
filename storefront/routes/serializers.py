"""JSON views of session state"""

from dataclasses import asdict
from typing import Optional

from ..core.money import format_uyu
from ..core.session import StorefrontSession
from ..services.checkout import CheckoutStateMachine
from ..services.pricing import CartTotals


def totals_view(totals: CartTotals) -> dict:
    view = totals.to_dict()
    view["formatted"] = {
        "subtotal": format_uyu(totals.subtotal),
        "shipping_cost": format_uyu(totals.shipping_cost),
        "discount": format_uyu(totals.discount),
        "total": format_uyu(totals.total),
        "remaining_for_free_shipping": format_uyu(totals.remaining_for_free_shipping),
    }
    return view


def cart_view(session: StorefrontSession) -> dict:
    settings = session.settings
    totals = session.cart.totals(
        session.shipping.current_cost,
        session.coupons.discount_for(session.cart.subtotal),
        settings.free_shipping_threshold,
    )
    return {
        "items": [
            {
                **item.model_dump(),
                "line_total": item.line_total,
                "can_increment": item.can_increment,
                "can_decrement": item.can_decrement,
            }
            for item in session.cart.items
        ],
        "coupon": coupon_view(session),
        "coupon_error": session.coupons.error,
        "totals": totals_view(totals),
    }


def coupon_view(session: StorefrontSession) -> Optional[dict]:
    applied = session.coupons.applied
    if applied is None:
        return None
    return {
        "code": applied.code,
        "discount": applied.discount,
        "discount_type": applied.discount_type,
        "description": applied.description,
    }


def checkout_view(machine: CheckoutStateMachine, shipping) -> dict:
    draft = machine.draft
    return {
        "step": machine.step.value,
        "step_number": machine.step.number,
        "errors": machine.errors,
        "submit_error": machine.submit_error,
        "in_flight": machine.in_flight,
        "draft": {
            "personal": asdict(draft.personal),
            "address": asdict(draft.address),
            "payment_method": draft.payment_method.value if draft.payment_method else None,
        },
        "enabled_methods": sorted(m.value for m in machine.enabled_methods),
        "shipping": {
            "department": shipping.department,
            "cost": shipping.current_cost,
            "is_calculating": shipping.is_calculating,
        },
        "totals": totals_view(machine.current_totals()),
        "redirect_url": machine.redirect.url if machine.redirect else None,
    }
