"""Current-session dependency: cookie lookup plus fingerprint check."""

from fastapi import Depends, HTTPException, Request

from vault.auth.fingerprint import get_fingerprint
from vault.config import settings
from vault.dependencies import get_session_service
from vault.errors import NotFound
from vault.models.session import Session
from vault.services.session import SessionService


def get_session_id(request: Request) -> str:
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session_id


async def get_current_session(
    request: Request,
    session_id: str = Depends(get_session_id),
    sessions: SessionService = Depends(get_session_service),
) -> Session:
    """Validate the session cookie against the requesting device.

    A device mismatch propagates as ``DeviceMismatch`` (403); it is never
    treated as a missing session.
    """
    try:
        return await sessions.validate(session_id, get_fingerprint(request))
    except NotFound:
        raise HTTPException(status_code=401, detail="Session expired or not found") from None
