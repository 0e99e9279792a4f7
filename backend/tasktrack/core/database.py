"""Async database engine and session management.

Configures the SQLAlchemy async engine with connection pooling, provides
dependency injection for database sessions, and translates driver-level
connectivity failures into StorageUnavailableError.
"""

import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tasktrack.core.config import settings
from tasktrack.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Errors that mean "the store could not be reached", as opposed to a bad
# query or a constraint violation.
_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    OSError,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    """Re-raise connectivity failures as StorageUnavailableError.

    IntegrityError and programming errors pass through untouched so callers
    can still react to constraint violations.

    Args:
        operation: Short label included in the log line (never user-facing).

    Raises:
        StorageUnavailableError: If the wrapped block hit a connectivity error.
    """
    try:
        yield
    except _UNAVAILABLE_ERRORS as exc:
        logger.error("Storage unavailable during %s: %s", operation, type(exc).__name__)
        raise StorageUnavailableError() from exc


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet.

    Development shortcut used at startup when DATABASE_AUTO_CREATE is
    enabled. Deployed schemas come from the alembic revisions in
    backend/migrations.
    """
    from tasktrack.models import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
