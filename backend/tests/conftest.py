import os
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tasktrack.core.rate_limiting import limiter
from tasktrack.models.base import Base
from tasktrack.models.user import User

# Set TEST_DATABASE_URL (postgresql+asyncpg://...) to run against PostgreSQL.
# Without it every test gets a fresh SQLite file.
_TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "")

# Fixed start time so expiry tests are deterministic
CLOCK_START = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)

TEST_EMAIL = "alice@example.com"


class FakeClock:
    """Settable clock for services that take a ``Clock``."""

    def __init__(self, start: datetime = CLOCK_START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingSender:
    """Notification sender that records deliveries instead of emailing.

    Attributes:
        sent: (email, code) pairs in delivery order.
        fail: When True, send() reports failure without recording.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, email: str, code: str) -> bool:
        if self.fail:
            return False
        self.sent.append((email, code))
        return True

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


# Milliseconds a writer waits for the SQLite write lock before failing.
_SQLITE_BUSY_TIMEOUT_MS = 10_000


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works under aiosqlite.

    BEGIN IMMEDIATE takes the write lock up front, so concurrent sessions
    queue behind each other (busy_timeout) the way row locks make them
    wait on PostgreSQL, instead of failing with "database is locked".
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with all tables."""
    if _TEST_DATABASE_URL:
        engine = create_async_engine(_TEST_DATABASE_URL, echo=False)
    else:
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'auth_test.db'}", echo=False
        )
        _enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    if _TEST_DATABASE_URL:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at CLOCK_START."""
    return FakeClock()


@pytest.fixture
def sender() -> RecordingSender:
    """Notification sender that records codes."""
    return RecordingSender()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create an active user for TEST_EMAIL."""
    user = User(
        id=uuid.uuid4(),
        email=TEST_EMAIL,
        full_name="Alice",
        created_at=CLOCK_START,
        updated_at=CLOCK_START,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture(autouse=True)
def _disable_rate_limiting() -> Iterator[None]:
    """Keep the shared limiter out of tests that do not exercise it."""
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original
    limiter.reset()


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory, clock: FakeClock, sender: RecordingSender
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for auth API tests.

    Sets up:
    - Test database connection via dependency override
    - FakeClock for every auth service
    - RecordingSender in place of the email provider
    - https base URL so Secure session cookies round-trip

    Yields:
        AsyncClient with its own cookie jar.
    """
    from tasktrack.api.deps import get_clock
    from tasktrack.core.database import get_db
    from tasktrack.core.email import get_notification_sender
    from tasktrack.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notification_sender] = lambda: sender

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as ac:
        yield ac

    app.dependency_overrides.clear()
