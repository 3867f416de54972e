"""Test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (tables created from the ORM
metadata), a frozen clock, and services wired to them. HTTP tests drive the
FastAPI app through httpx with the service dependencies overridden.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from vault.auth.fingerprint import Fingerprint
from vault.auth.rate_limit import check_rate_limit
from vault.config import settings
from vault.database import Base, make_engine, make_session_factory
from vault.dependencies import get_account_service, get_session_service
from vault.main import app
from vault.models.account import Account, PasswordToken, Verification  # noqa: F401
from vault.models.session import Session  # noqa: F401
from vault.services.account import AccountService
from vault.services.blocklist import BlockList
from vault.services.notifications import NotificationDispatcher
from vault.services.session import SessionService
from vault.store.sql import SqlCredentialStore
from vault.utils.passwords import BcryptHasher
from vault.utils.tokens import SecretsTokenIssuer

RESET_TOKEN_TTL = timedelta(minutes=15)
SESSION_TTL = timedelta(days=30)

# ASGITransport reports the client as 127.0.0.1
USER_AGENT = "vault-tests/1.0"
FINGERPRINT = Fingerprint(user_agent=USER_AGENT, ip="127.0.0.1")


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    object.__setattr__(settings, "session_cookie_secure", False)
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = make_engine(settings.test_database_url, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlCredentialStore:
    return SqlCredentialStore(session_factory, timeout=5.0)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def hasher() -> BcryptHasher:
    # Minimum cost keeps the suite fast
    return BcryptHasher(rounds=4)


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture
async def dispatcher() -> AsyncGenerator[NotificationDispatcher, None]:
    dispatcher = NotificationDispatcher(workers=2, queue_size=100)
    dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
def accounts(
    store: SqlCredentialStore,
    hasher: BcryptHasher,
    clock: FrozenClock,
    notifier: AsyncMock,
    dispatcher: NotificationDispatcher,
) -> AccountService:
    return AccountService(
        store,
        SecretsTokenIssuer(),
        hasher,
        clock,
        notifier,
        dispatcher,
        BlockList(["admin", "root"]),
        reset_token_ttl=RESET_TOKEN_TTL,
        avatar_base_url="https://avatars.example.com",
    )


@pytest.fixture
def sessions(
    store: SqlCredentialStore, hasher: BcryptHasher, clock: FrozenClock
) -> SessionService:
    return SessionService(store, SecretsTokenIssuer(), hasher, clock, ttl=SESSION_TTL)


@pytest_asyncio.fixture
async def client(
    accounts: AccountService, sessions: SessionService
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with the services and rate limiter overridden."""

    async def no_rate_limit() -> None:
        return None

    app.dependency_overrides[get_account_service] = lambda: accounts
    app.dependency_overrides[get_session_service] = lambda: sessions
    app.dependency_overrides[check_rate_limit] = no_rate_limit

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"User-Agent": USER_AGENT},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def account(accounts: AccountService, dispatcher: NotificationDispatcher) -> Account:
    """A freshly created, unverified account (password ``correct-horse``)."""
    account = await accounts.create("alice@example.com", "alice", "correct-horse")
    await dispatcher.join()
    return account


def session_cookie(session_id: str) -> dict[str, str]:
    return {"Cookie": f"{settings.session_cookie_name}={session_id}"}


@pytest.fixture
def cookie_header():
    return session_cookie


@pytest.fixture
def fingerprint() -> Fingerprint:
    return FINGERPRINT
