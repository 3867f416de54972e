"""Credential store contract.

Every method is one atomic unit: it either applies all of its effects or
none of them. Uniqueness (email, nickname, codes, tokens, session ids) and
the one-outstanding-reset-token-per-account rule are enforced here and
nowhere else.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from vault.models.account import Account, PasswordToken
from vault.models.session import Session


@dataclass(frozen=True)
class PendingVerification:
    account_id: uuid.UUID
    email: str
    code: str
    is_verified: bool


class CredentialStore(Protocol):
    # Accounts
    async def insert_account(self, account: Account, code: str) -> Account: ...

    async def find_account_by_id(self, account_id: uuid.UUID) -> Account: ...

    async def find_account_by_email(self, email: str) -> Account: ...

    async def find_account_by_nickname(self, nickname: str) -> Account: ...

    async def archive_account(self, account_id: uuid.UUID, updated_at: datetime) -> None: ...

    async def update_password(
        self, account_id: uuid.UUID, password_hash: str, updated_at: datetime
    ) -> None: ...

    # Verification codes
    async def find_verification(self, account_id: uuid.UUID) -> PendingVerification: ...

    async def verify(self, code: str, updated_at: datetime) -> uuid.UUID: ...

    # Password reset tokens
    async def insert_password_token(
        self,
        account_id: uuid.UUID,
        token: str,
        created_at: datetime,
        expired_before: datetime,
    ) -> PasswordToken: ...

    async def find_password_token(self, token: str) -> PasswordToken: ...

    async def update_password_with_token(
        self,
        token: str,
        password_hash: str,
        updated_at: datetime,
        issued_after: datetime,
    ) -> uuid.UUID: ...

    # Sessions
    async def insert_session(self, session: Session) -> Session: ...

    async def find_session(self, session_id: str) -> Session: ...

    async def find_sessions(self, account_id: uuid.UUID) -> list[Session]: ...

    async def delete_session(self, session_id: str) -> None: ...

    async def delete_session_of(self, account_id: uuid.UUID, session_id: str) -> None: ...

    async def delete_sessions(self, account_id: uuid.UUID) -> int: ...

    async def delete_sessions_except(self, account_id: uuid.UUID, session_id: str) -> int: ...
