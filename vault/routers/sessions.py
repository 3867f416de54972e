"""Session endpoints: login, logout, listing and remote termination."""

from fastapi import APIRouter, Depends, Request, Response

from vault.auth.fingerprint import get_fingerprint
from vault.auth.rate_limit import check_rate_limit
from vault.auth.session import get_current_session
from vault.config import settings
from vault.dependencies import get_session_service
from vault.models.session import Session
from vault.schemas.session import (
    LoginRequest,
    SessionListResponse,
    SessionResponse,
    TerminatedResponse,
)
from vault.services.session import SessionService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=SessionResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """Log in with email or nickname. Sets the session cookie."""
    session = await sessions.login(data.login, data.password, get_fingerprint(request))
    response.set_cookie(
        settings.session_cookie_name,
        session.id,
        max_age=session.max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return SessionResponse.model_validate(session)


@router.delete("", status_code=204)
async def logout(
    response: Response,
    session: Session = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
) -> None:
    await sessions.terminate(session.id)
    response.delete_cookie(settings.session_cookie_name)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    session: Session = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
) -> SessionListResponse:
    active = await sessions.list_active(session.account_id)
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(s) for s in active],
        current_session_id=session.id,
    )


@router.delete("/others", response_model=TerminatedResponse)
async def terminate_others(
    session: Session = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
) -> TerminatedResponse:
    """Log out every other device."""
    count = await sessions.terminate_all_except(session.account_id, session.id)
    return TerminatedResponse(terminated=count)


@router.delete("/{session_id}", status_code=204)
async def terminate(
    session_id: str,
    session: Session = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
) -> None:
    """Terminate another session of the same account."""
    await sessions.terminate_other(session.account_id, session_id, session.id)
