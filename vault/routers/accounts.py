"""Account endpoints: signup, verification, password reset and change, deletion."""

from fastapi import APIRouter, Depends, Query, Response

from vault.auth.rate_limit import check_rate_limit
from vault.auth.session import get_current_session
from vault.config import settings
from vault.dependencies import get_account_service
from vault.models.session import Session
from vault.schemas.account import (
    AccountCreateRequest,
    AccountResponse,
    MessageResponse,
    PasswordResetRedeem,
    PasswordResetRequest,
    PasswordUpdateRequest,
)
from vault.services.account import AccountService

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post(
    "",
    response_model=AccountResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def create_account(
    data: AccountCreateRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Create an account. A verification email is sent in the background."""
    account = await accounts.create(data.email, data.nickname, data.password)
    return AccountResponse.model_validate(account)


@router.get("/me", response_model=AccountResponse)
async def get_me(
    session: Session = Depends(get_current_session),
    accounts: AccountService = Depends(get_account_service),
) -> AccountResponse:
    account = await accounts.get_by_id(session.account_id)
    return AccountResponse.model_validate(account)


@router.delete("/me", status_code=204)
async def delete_me(
    response: Response,
    session: Session = Depends(get_current_session),
    accounts: AccountService = Depends(get_account_service),
) -> None:
    """Archive the account and log out everywhere."""
    await accounts.delete(session.account_id, session.id)
    response.delete_cookie(settings.session_cookie_name)


@router.post(
    "/verification",
    response_model=MessageResponse,
    status_code=202,
    dependencies=[Depends(check_rate_limit)],
)
async def request_verification(
    session: Session = Depends(get_current_session),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.request_verification(session.account_id)
    return MessageResponse(message="Verification email sent. Check your inbox.")


@router.put(
    "/verification",
    response_model=MessageResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def verify(
    code: str = Query(..., max_length=128),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.verify(code)
    return MessageResponse(message="Email verified.")


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    status_code=202,
    dependencies=[Depends(check_rate_limit)],
)
async def request_password_reset(
    data: PasswordResetRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.request_password_reset(data.login)
    return MessageResponse(message="Password reset email sent. Check your inbox.")


@router.put(
    "/password/reset",
    response_model=MessageResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def reset_password(
    data: PasswordResetRedeem,
    token: str = Query(..., max_length=128),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.reset_password(token, data.password)
    return MessageResponse(message="Password updated.")


@router.put("/password", response_model=MessageResponse)
async def update_password(
    data: PasswordUpdateRequest,
    session: Session = Depends(get_current_session),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.update_password(session.account_id, data.old_password, data.new_password)
    return MessageResponse(message="Password updated.")
