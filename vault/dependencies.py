"""Service wiring.

Services are built once in the application lifespan and stored on
``app.state``; route handlers reach them through the ``get_*`` dependencies,
which tests override.
"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vault.config import Settings
from vault.services.account import AccountService
from vault.services.blocklist import BlockList
from vault.services.email import get_email_sender
from vault.services.notifications import EmailNotifier, NotificationDispatcher
from vault.services.session import SessionService
from vault.store.sql import SqlCredentialStore
from vault.utils.clock import Clock, SystemClock
from vault.utils.passwords import BcryptHasher
from vault.utils.tokens import SecretsTokenIssuer


@dataclass
class Services:
    accounts: AccountService
    sessions: SessionService
    dispatcher: NotificationDispatcher


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock | None = None,
) -> Services:
    clock = clock or SystemClock()
    store = SqlCredentialStore(session_factory, timeout=settings.store_timeout_seconds)
    issuer = SecretsTokenIssuer()
    hasher = BcryptHasher(rounds=settings.bcrypt_rounds)
    dispatcher = NotificationDispatcher(
        workers=settings.notification_workers,
        queue_size=settings.notification_queue_size,
    )
    notifier = EmailNotifier(
        get_email_sender(settings),
        base_url=settings.base_url,
        reset_token_ttl_seconds=settings.password_reset_token_ttl_seconds,
    )
    accounts = AccountService(
        store,
        issuer,
        hasher,
        clock,
        notifier,
        dispatcher,
        BlockList(settings.forbidden_nicknames),
        reset_token_ttl=timedelta(seconds=settings.password_reset_token_ttl_seconds),
        avatar_base_url=settings.avatar_base_url,
        verification_code_length=settings.verification_code_length,
        password_reset_token_length=settings.password_reset_token_length,
    )
    sessions = SessionService(
        store,
        issuer,
        hasher,
        clock,
        ttl=timedelta(seconds=settings.session_ttl_seconds),
        session_id_length=settings.session_id_length,
    )
    return Services(accounts=accounts, sessions=sessions, dispatcher=dispatcher)


def get_account_service(request: Request) -> AccountService:
    return request.app.state.services.accounts


def get_session_service(request: Request) -> SessionService:
    return request.app.state.services.sessions
