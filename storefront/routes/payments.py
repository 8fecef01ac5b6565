"""Payment return pages and the development payment simulator"""

import html
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from ..core.exceptions import BackendError, BackendUnavailableError
from ..core.session import SessionManager
from .deps import backend_http_error, get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

OUTCOMES = {
    "success": ("✓", "text-green-500", "Pago aprobado", "Gracias por tu compra. Te enviamos un email con el detalle."),
    "pending": ("…", "text-yellow-500", "Pago pendiente", "Estamos esperando la confirmacion del medio de pago."),
    "failure": ("✗", "text-red-500", "Pago rechazado", "No pudimos procesar el pago. Puedes intentarlo nuevamente."),
}


class SimulationConfirmRequest(BaseModel):
    session_id: str
    order_id: str
    action: Literal["approve", "reject"]


@router.get("/return/{outcome}", response_class=HTMLResponse)
async def payment_return(
    outcome: Literal["success", "pending", "failure"],
    order: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Page the payment provider sends the shopper back to.

    The order's final state arrives at the backend through the provider's
    webhook; this page only reports the outcome the provider announced.
    """
    order_label = order or ""
    session = manager.get_session(session_id) if session_id else None
    if session:
        # The cart was turned into an order on the backend
        session.cart.invalidate()
        if order and outcome == "success":
            try:
                details = await session.client.get_order(order)
                order_label = details.order_number or order
            except (BackendError, BackendUnavailableError) as e:
                logger.warning(f"Could not load order {order}: {e}")

    icon, color, title, text = OUTCOMES[outcome]
    order_line = (
        f'<p class="text-sm text-gray-500">Pedido {html.escape(order_label)}</p>'
        if order_label else ""
    )
    logger.info(f"Payment return: {outcome} for order {order or '-'}")

    return HTMLResponse(
        content=f"""
        <html>
        <head>
            <title>{title}</title>
            <script src="https://cdn.tailwindcss.com"></script>
        </head>
        <body class="bg-gray-100 min-h-screen flex items-center justify-center">
            <div class="bg-white p-8 rounded-lg shadow-md max-w-md text-center">
                <div class="{color} text-6xl mb-4">{icon}</div>
                <h1 class="text-2xl font-bold text-gray-900 mb-2">{title}</h1>
                <p class="text-gray-600 mb-4">{text}</p>
                {order_line}
            </div>
        </body>
        </html>
        """,
        status_code=200,
    )


@router.post("/simulation/confirm")
async def confirm_simulation(
    request: SimulationConfirmRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Approve or reject a simulated payment (development only)"""
    if manager.settings.is_production:
        raise HTTPException(status_code=404, detail="Not found")

    session = manager.get_session(request.session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    try:
        await session.client.confirm_simulation_payment(request.order_id, request.action)
    except (BackendError, BackendUnavailableError) as e:
        raise backend_http_error(e)

    outcome = "success" if request.action == "approve" else "failure"
    return {
        "order_id": request.order_id,
        "redirect_url": (
            f"/api/payments/return/{outcome}?order={request.order_id}"
            f"&session_id={request.session_id}"
        ),
    }
