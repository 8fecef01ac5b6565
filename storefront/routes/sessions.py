"""Storefront session routes"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from ..core.exceptions import BackendError, BackendUnavailableError
from ..core.session import SessionManager, StorefrontSession
from .deps import get_session_manager, get_storefront_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])


class SessionResponse(BaseModel):
    session_id: str
    authenticated: bool
    email: Optional[str] = None
    checkout_step: Optional[str] = None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def _session_response(session: StorefrontSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        authenticated=session.client.access_token is not None,
        email=session.profile.email if session.profile else None,
        checkout_step=session.checkout.step.value if session.checkout else None,
    )


@router.post("", response_model=SessionResponse)
async def create_session(
    authorization: Optional[str] = Header(None),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Create a storefront session.

    The shopper's bearer token, when sent, is forwarded to the store backend
    and used to pre-fill checkout from the profile.
    """
    session = manager.create_session(access_token=_bearer_token(authorization))

    if session.client.access_token:
        try:
            session.profile = await session.client.get_profile()
        except (BackendError, BackendUnavailableError) as e:
            logger.warning(f"Could not load profile for session {session.session_id}: {e}")

    return _session_response(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session: StorefrontSession = Depends(get_storefront_session)):
    """Get session details"""
    return _session_response(session)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """Delete a session"""
    if await manager.delete_session(session_id):
        return {"message": "Session deleted"}
    raise HTTPException(status_code=404, detail="Session not found")
