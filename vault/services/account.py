"""Account service: creation, email verification, password reset, archival."""

import asyncio
import logging
import uuid
from datetime import timedelta

from vault.errors import (
    AlreadyVerified,
    ForbiddenIdentifier,
    IncorrectPassword,
    ResetTokenExpired,
)
from vault.models.account import Account
from vault.services.blocklist import BlockList
from vault.services.notifications import NotificationDispatcher, NotificationSink
from vault.store.base import CredentialStore
from vault.utils.clock import Clock, ensure_utc
from vault.utils.passwords import PasswordHasher
from vault.utils.tokens import TokenIssuer
from vault.utils.validation import is_email

logger = logging.getLogger(__name__)

VERIFICATION_CODE_LENGTH = 64
PASSWORD_RESET_TOKEN_LENGTH = 64


class AccountService:
    def __init__(
        self,
        store: CredentialStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        clock: Clock,
        notifier: NotificationSink,
        dispatcher: NotificationDispatcher,
        blocklist: BlockList,
        *,
        reset_token_ttl: timedelta,
        avatar_base_url: str,
        verification_code_length: int = VERIFICATION_CODE_LENGTH,
        password_reset_token_length: int = PASSWORD_RESET_TOKEN_LENGTH,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.hasher = hasher
        self.clock = clock
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.blocklist = blocklist
        self.reset_token_ttl = reset_token_ttl
        self.avatar_base_url = avatar_base_url.rstrip("/")
        self.verification_code_length = verification_code_length
        self.password_reset_token_length = password_reset_token_length

    async def create(self, email: str, nickname: str, password: str) -> Account:
        """Create an unverified account and email it a verification code.

        The verification email is dispatched after the account is stored; a
        failed send does not undo the account.
        """
        if self.blocklist.find(nickname):
            raise ForbiddenIdentifier()

        password_hash = await asyncio.to_thread(self.hasher.hash, password)
        now = self.clock.now()
        account = Account(
            account_id=uuid.uuid4(),
            email=email,
            nickname=nickname,
            password_hash=password_hash,
            avatar_url=f"{self.avatar_base_url}/{nickname}.svg",
            is_verified=False,
            is_archived=False,
            created_at=now,
            updated_at=now,
        )
        code = self.issuer.issue(self.verification_code_length)

        account = await self.store.insert_account(account, code)
        logger.info("Account %s created", account.account_id)

        self._notify_verification(account.account_id, account.email, code)
        return account

    async def get_by_id(self, account_id: uuid.UUID) -> Account:
        return await self.store.find_account_by_id(account_id)

    async def get_by_email(self, email: str) -> Account:
        return await self.store.find_account_by_email(email)

    async def get_by_nickname(self, nickname: str) -> Account:
        return await self.store.find_account_by_nickname(nickname)

    async def get_by_login(self, login: str) -> Account:
        """Resolve ``login`` as an email if it looks like one, else a nickname."""
        if is_email(login):
            return await self.store.find_account_by_email(login)
        return await self.store.find_account_by_nickname(login)

    async def delete(self, account_id: uuid.UUID, session_id: str) -> None:
        """Archive the account. Its sessions, ``session_id`` included, are dropped."""
        await self.store.archive_account(account_id, self.clock.now())
        logger.info("Account %s archived from session %s", account_id, session_id[:8])

    async def request_verification(self, account_id: uuid.UUID) -> None:
        """Re-send the existing verification code."""
        pending = await self.store.find_verification(account_id)
        if pending.is_verified:
            raise AlreadyVerified()
        self._notify_verification(account_id, pending.email, pending.code)

    async def verify(self, code: str) -> uuid.UUID:
        """Consume ``code``. A replayed code raises ``NotFound``."""
        account_id = await self.store.verify(code, self.clock.now())
        logger.info("Account %s verified", account_id)
        return account_id

    async def request_password_reset(self, login: str) -> None:
        account = await self.get_by_login(login)

        now = self.clock.now()
        token = self.issuer.issue(self.password_reset_token_length)
        await self.store.insert_password_token(
            account.account_id,
            token,
            created_at=now,
            expired_before=now - self.reset_token_ttl,
        )
        logger.info("Password reset token issued for account %s", account.account_id)

        email = account.email
        self.dispatcher.submit(
            f"send password reset email for account {account.account_id}",
            lambda: self.notifier.send_password_reset_email(email, token),
        )

    async def reset_password(self, token: str, password: str) -> None:
        """Redeem a reset token and set ``password``.

        Expired tokens stay in the store but can never be redeemed.
        """
        password_token = await self.store.find_password_token(token)

        now = self.clock.now()
        deadline = ensure_utc(password_token.created_at) + self.reset_token_ttl
        if now > deadline:
            raise ResetTokenExpired()

        account_id = await self.store.update_password_with_token(
            token,
            await asyncio.to_thread(self.hasher.hash, password),
            updated_at=now,
            issued_after=now - self.reset_token_ttl,
        )
        logger.info("Password reset for account %s", account_id)

    async def update_password(
        self, account_id: uuid.UUID, old_password: str, new_password: str
    ) -> None:
        account = await self.store.find_account_by_id(account_id)
        if not await asyncio.to_thread(self.hasher.verify, old_password, account.password_hash):
            raise IncorrectPassword("Incorrect password")
        await self.store.update_password(
            account_id,
            await asyncio.to_thread(self.hasher.hash, new_password),
            self.clock.now(),
        )
        logger.info("Password changed for account %s", account_id)

    def _notify_verification(self, account_id: uuid.UUID, email: str, code: str) -> None:
        self.dispatcher.submit(
            f"send verification email for account {account_id}",
            lambda: self.notifier.send_verification_email(email, code),
        )
