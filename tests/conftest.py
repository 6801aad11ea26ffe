"""Test configuration and fixtures.

Each test gets its own SQLite database file (via aiosqlite) with the tables
created up front, so tests can commit freely and run concurrently against a
real unique-constraint-enforcing store.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import VerificationOptions, settings
from app.database import Base
from app.main import app
from app.models.user import TempUser
from app.schemas.mail import DeliveryInfo
from app.services.mailer import MailDispatcher
from app.services.staging import StagingStore
from app.services.store import SqlPersistenceStore
from app.services.verification import VerificationService, get_verification_service


@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'signup.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def options() -> VerificationOptions:
    return VerificationOptions.build(
        verification_url="http://test/auth/verify-email?token=${URL}",
    )


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlPersistenceStore:
    return SqlPersistenceStore(session_factory)


@pytest.fixture
def staging(store: SqlPersistenceStore, options: VerificationOptions) -> StagingStore:
    return StagingStore(store, options)


def _deliver(to: str, subject: str, html: str, text: str, from_address: str) -> DeliveryInfo:
    return DeliveryInfo(to=to, message_id="<test@localhost>", backend="mock")


@pytest.fixture
def sender() -> AsyncMock:
    """Email sender double. Inspect ``sender.send.call_args`` for what was mailed."""
    mock = AsyncMock()
    mock.send.side_effect = _deliver
    return mock


@pytest_asyncio.fixture
async def service(
    options: VerificationOptions, staging: StagingStore, sender: AsyncMock
) -> AsyncGenerator[VerificationService, None]:
    service = VerificationService(options, staging, MailDispatcher(sender))
    yield service
    await service.aclose()


@pytest_asyncio.fixture
async def client(service: VerificationService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client wired to the per-test verification service."""
    app.dependency_overrides[get_verification_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def backdate(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[str, timedelta], Awaitable[None]]:
    """Age a staged record by moving its created_at into the past."""

    async def _backdate(token: str, age: timedelta) -> None:
        async with session_factory() as db:
            await db.execute(
                update(TempUser)
                .where(TempUser.token == token)
                .values(created_at=datetime.now(UTC) - age)
            )
            await db.commit()

    return _backdate
