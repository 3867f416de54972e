"""SQLAlchemy implementation of the credential store.

Each public method runs in its own transaction. Unique constraints on the
tables are the source of truth for uniqueness; ``IntegrityError`` is
translated into the matching domain error. A transaction that outlives
``timeout`` seconds, or whose task is cancelled, is rolled back.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vault.errors import (
    AlreadyExists,
    NotFound,
    PasswordTokenAlreadyExist,
    PasswordTokenNotFound,
    ResetTokenExpired,
)
from vault.models.account import Account, PasswordToken, Verification
from vault.models.session import Session
from vault.store.base import PendingVerification
from vault.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


class SqlCredentialStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.timeout = timeout

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with asyncio.timeout(self.timeout):
            async with self._session_factory() as db:
                async with db.begin():
                    yield db

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def insert_account(self, account: Account, code: str) -> Account:
        """Persist ``account`` together with its verification code."""
        if account.account_id is None:
            account.account_id = uuid.uuid4()
        try:
            async with self._transaction() as db:
                db.add(account)
                db.add(Verification(code=code, account_id=account.account_id))
                await db.flush()
        except IntegrityError as e:
            raise AlreadyExists() from e
        return account

    async def find_account_by_id(self, account_id: uuid.UUID) -> Account:
        return await self._find_account(Account.account_id == account_id)

    async def find_account_by_email(self, email: str) -> Account:
        return await self._find_account(Account.email == email)

    async def find_account_by_nickname(self, nickname: str) -> Account:
        return await self._find_account(Account.nickname == nickname)

    async def _find_account(self, clause) -> Account:  # type: ignore[no-untyped-def]
        async with self._transaction() as db:
            result = await db.execute(
                select(Account).where(clause, Account.is_archived.is_(False))
            )
            account = result.scalar_one_or_none()
        if account is None:
            raise NotFound("Account not found")
        return account

    async def archive_account(self, account_id: uuid.UUID, updated_at: datetime) -> None:
        """Archive the account and drop every session it owns."""
        async with self._transaction() as db:
            result = await db.execute(
                update(Account)
                .where(Account.account_id == account_id, Account.is_archived.is_(False))
                .values(is_archived=True, updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound("Account not found")
            await db.execute(delete(Session).where(Session.account_id == account_id))

    async def update_password(
        self, account_id: uuid.UUID, password_hash: str, updated_at: datetime
    ) -> None:
        async with self._transaction() as db:
            result = await db.execute(
                update(Account)
                .where(Account.account_id == account_id, Account.is_archived.is_(False))
                .values(password_hash=password_hash, updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound("Account not found")

    # ------------------------------------------------------------------
    # Verification codes
    # ------------------------------------------------------------------

    async def find_verification(self, account_id: uuid.UUID) -> PendingVerification:
        async with self._transaction() as db:
            result = await db.execute(
                select(Account.email, Account.is_verified, Verification.code)
                .join(Verification, Verification.account_id == Account.account_id)
                .where(Account.account_id == account_id, Account.is_archived.is_(False))
            )
            row = result.one_or_none()
        if row is None:
            raise NotFound("Verification not found")
        return PendingVerification(
            account_id=account_id,
            email=row.email,
            code=row.code,
            is_verified=row.is_verified,
        )

    async def verify(self, code: str, updated_at: datetime) -> uuid.UUID:
        """Mark the account owning ``code`` verified.

        The UPDATE is conditional on the account still being unverified, so a
        code is consumed at most once: replaying it raises ``NotFound``.
        """
        async with self._transaction() as db:
            result = await db.execute(
                select(Verification.account_id).where(Verification.code == code)
            )
            account_id = result.scalar_one_or_none()
            if account_id is None:
                raise NotFound("Verification code not found")

            result = await db.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.is_verified.is_(False),
                    Account.is_archived.is_(False),
                )
                .values(is_verified=True, updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound("Verification code not found")
        return account_id

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    async def insert_password_token(
        self,
        account_id: uuid.UUID,
        token: str,
        created_at: datetime,
        expired_before: datetime,
    ) -> PasswordToken:
        """Issue a reset token unless the account already holds a live one.

        A token created before ``expired_before`` is dead and gets
        replaced in the same transaction.
        """
        try:
            async with self._transaction() as db:
                result = await db.execute(
                    select(Account.account_id).where(
                        Account.account_id == account_id,
                        Account.is_archived.is_(False),
                    )
                )
                if result.scalar_one_or_none() is None:
                    raise NotFound("Account not found")

                result = await db.execute(
                    select(PasswordToken).where(PasswordToken.account_id == account_id)
                )
                existing = result.scalar_one_or_none()
                if existing is not None:
                    if ensure_utc(existing.created_at) >= expired_before:
                        raise PasswordTokenAlreadyExist()
                    logger.info("Replacing expired password token for account %s", account_id)
                    await db.delete(existing)
                    await db.flush()

                password_token = PasswordToken(
                    token=token, account_id=account_id, created_at=created_at
                )
                db.add(password_token)
                await db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent request for the same account
            raise PasswordTokenAlreadyExist() from e
        return password_token

    async def find_password_token(self, token: str) -> PasswordToken:
        async with self._transaction() as db:
            result = await db.execute(
                select(PasswordToken).where(PasswordToken.token == token)
            )
            password_token = result.scalar_one_or_none()
        if password_token is None:
            raise PasswordTokenNotFound()
        return password_token

    async def update_password_with_token(
        self,
        token: str,
        password_hash: str,
        updated_at: datetime,
        issued_after: datetime,
    ) -> uuid.UUID:
        """Redeem ``token``: set the new password hash and delete the token.

        The token row is locked, its expiry re-checked and the delete guarded
        by rowcount, so two concurrent redemptions cannot both succeed.
        """
        async with self._transaction() as db:
            result = await db.execute(
                select(PasswordToken)
                .where(PasswordToken.token == token)
                .with_for_update()
            )
            password_token = result.scalar_one_or_none()
            if password_token is None:
                raise PasswordTokenNotFound()
            if ensure_utc(password_token.created_at) < issued_after:
                raise ResetTokenExpired()

            result = await db.execute(
                delete(PasswordToken)
                .where(PasswordToken.token == token)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise PasswordTokenNotFound()

            result = await db.execute(
                update(Account)
                .where(
                    Account.account_id == password_token.account_id,
                    Account.is_archived.is_(False),
                )
                .values(password_hash=password_hash, updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound("Account not found")
            return password_token.account_id

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def insert_session(self, session: Session) -> Session:
        try:
            async with self._transaction() as db:
                db.add(session)
                await db.flush()
        except IntegrityError as e:
            raise AlreadyExists("Session already exists") from e
        return session

    async def find_session(self, session_id: str) -> Session:
        async with self._transaction() as db:
            result = await db.execute(select(Session).where(Session.id == session_id))
            session = result.scalar_one_or_none()
        if session is None:
            raise NotFound("Session not found")
        return session

    async def find_sessions(self, account_id: uuid.UUID) -> list[Session]:
        async with self._transaction() as db:
            result = await db.execute(
                select(Session)
                .where(Session.account_id == account_id)
                .order_by(Session.created_at)
            )
            return list(result.scalars().all())

    async def delete_session(self, session_id: str) -> None:
        async with self._transaction() as db:
            result = await db.execute(delete(Session).where(Session.id == session_id))
            if result.rowcount == 0:
                raise NotFound("Session not found")

    async def delete_session_of(self, account_id: uuid.UUID, session_id: str) -> None:
        async with self._transaction() as db:
            result = await db.execute(
                delete(Session).where(
                    Session.id == session_id, Session.account_id == account_id
                )
            )
            if result.rowcount == 0:
                raise NotFound("Session not found")

    async def delete_sessions(self, account_id: uuid.UUID) -> int:
        async with self._transaction() as db:
            result = await db.execute(delete(Session).where(Session.account_id == account_id))
            return result.rowcount

    async def delete_sessions_except(self, account_id: uuid.UUID, session_id: str) -> int:
        async with self._transaction() as db:
            result = await db.execute(
                delete(Session).where(
                    Session.account_id == account_id, Session.id != session_id
                )
            )
            return result.rowcount
