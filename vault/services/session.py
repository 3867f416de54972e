"""Session service: login, validation and termination of client sessions."""

import asyncio
import logging
import uuid
from datetime import timedelta

from vault.auth.fingerprint import IP_MAX_LENGTH, Fingerprint
from vault.errors import (
    CannotTerminateSelf,
    DeviceMismatch,
    IncorrectPassword,
    InvalidAddress,
    NotFound,
)
from vault.models.session import Session
from vault.store.base import CredentialStore
from vault.utils.clock import Clock
from vault.utils.passwords import DUMMY_HASH, PasswordHasher
from vault.utils.tokens import TokenIssuer
from vault.utils.validation import is_email, is_ip_address

logger = logging.getLogger(__name__)

SESSION_ID_LENGTH = 64


class SessionService:
    def __init__(
        self,
        store: CredentialStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        clock: Clock,
        *,
        ttl: timedelta,
        session_id_length: int = SESSION_ID_LENGTH,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.hasher = hasher
        self.clock = clock
        self.ttl = ttl
        self.session_id_length = session_id_length

    def new(self, account_id: uuid.UUID, fingerprint: Fingerprint, ttl: timedelta) -> Session:
        """Build a session for ``account_id``; it is not persisted here."""
        if len(fingerprint.ip) > IP_MAX_LENGTH or not is_ip_address(fingerprint.ip):
            raise InvalidAddress()

        now = self.clock.now()
        max_age = int(ttl.total_seconds())
        return Session(
            id=self.issuer.issue(self.session_id_length),
            account_id=account_id,
            user_agent=fingerprint.user_agent,
            ip=fingerprint.ip,
            max_age=max_age,
            expires_at=int(now.timestamp()) + max_age,
            created_at=now,
        )

    async def create(
        self,
        account_id: uuid.UUID,
        fingerprint: Fingerprint,
        ttl: timedelta | None = None,
    ) -> Session:
        session = self.new(account_id, fingerprint, ttl or self.ttl)
        session = await self.store.insert_session(session)
        logger.info("Session %s created for account %s", session.id[:8], account_id)
        return session

    async def login(self, login: str, password: str, fingerprint: Fingerprint) -> Session:
        """Check credentials and open a session.

        Unknown logins and wrong passwords are indistinguishable to the caller.
        """
        try:
            if is_email(login):
                account = await self.store.find_account_by_email(login)
            else:
                account = await self.store.find_account_by_nickname(login)
        except NotFound:
            # Keep response time constant whether or not the account exists
            await asyncio.to_thread(self.hasher.verify, password, DUMMY_HASH)
            raise IncorrectPassword() from None

        if not await asyncio.to_thread(self.hasher.verify, password, account.password_hash):
            raise IncorrectPassword()

        return await self.create(account.account_id, fingerprint)

    async def validate(self, session_id: str, fingerprint: Fingerprint) -> Session:
        """Return a live session, checking it is used from the device it was issued to."""
        session = await self.store.find_session(session_id)
        if int(self.clock.now().timestamp()) >= session.expires_at:
            raise NotFound("Session not found")
        if session.fingerprint != fingerprint:
            raise DeviceMismatch()
        return session

    async def list_active(self, account_id: uuid.UUID) -> list[Session]:
        now = int(self.clock.now().timestamp())
        return [s for s in await self.store.find_sessions(account_id) if s.expires_at > now]

    async def terminate(self, session_id: str) -> None:
        await self.store.delete_session(session_id)
        logger.info("Session %s terminated", session_id[:8])

    async def terminate_other(
        self, account_id: uuid.UUID, session_id: str, current_session_id: str
    ) -> None:
        """Terminate one of the account's other sessions."""
        if session_id == current_session_id:
            raise CannotTerminateSelf()
        await self.store.delete_session_of(account_id, session_id)
        logger.info("Session %s of account %s terminated", session_id[:8], account_id)

    async def terminate_all(self, account_id: uuid.UUID) -> int:
        count = await self.store.delete_sessions(account_id)
        logger.info("Terminated %d sessions of account %s", count, account_id)
        return count

    async def terminate_all_except(self, account_id: uuid.UUID, current_session_id: str) -> int:
        count = await self.store.delete_sessions_except(account_id, current_session_id)
        logger.info(
            "Terminated %d sessions of account %s, kept %s",
            count, account_id, current_session_id[:8],
        )
        return count
