"""Shared route dependencies and error translation"""

from fastapi import Depends, HTTPException

from ..core.exceptions import BackendError, BackendUnavailableError, StorefrontError
from ..core.session import SessionManager, StorefrontSession, session_manager


def get_session_manager() -> SessionManager:
    """Get the process-wide session manager"""
    return session_manager


def get_storefront_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> StorefrontSession:
    session = manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    session.touch()
    return session


def backend_http_error(error: StorefrontError) -> HTTPException:
    """Map a failed backend call to the response sent to the browser"""
    if isinstance(error, BackendError):
        status_code = error.status_code if 400 <= error.status_code < 500 else 502
        return HTTPException(status_code=status_code, detail=error.message)
    if isinstance(error, BackendUnavailableError):
        return HTTPException(status_code=503, detail="Store backend unavailable")
    return HTTPException(status_code=400, detail=str(error))
