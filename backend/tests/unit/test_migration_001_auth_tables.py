"""Tests for migration 001: auth tables.

Runs the Alembic revision against a fresh SQLite file and checks that the
tables and the partial unique indexes the auth flow depends on exist.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tasktrack.core.config import settings

_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_INSERT_USER = text(
    "INSERT INTO users (id, email, is_deleted) VALUES (:id, :email, :is_deleted)"
)
_INSERT_CODE = text(
    "INSERT INTO otp_codes (id, user_id, email, code, expires_at, is_used) "
    "VALUES (:id, :user_id, :email, :code, '2026-01-05 12:15:00', :is_used)"
)


def _create_alembic_config():
    """Create alembic Config without ini file.

    Avoids fileConfig() which disables existing loggers and breaks
    pytest's caplog fixture for later tests.
    """
    from alembic.config import Config

    cfg = Config()
    cfg.set_main_option("script_location", str(_MIGRATIONS_DIR))
    return cfg


async def _run_alembic(url: str, action: str, target: str) -> None:
    from alembic import command

    with patch.object(settings, "database_url_override", url):
        await asyncio.to_thread(
            getattr(command, action), _create_alembic_config(), target
        )


@pytest_asyncio.fixture
async def migrated(tmp_path) -> AsyncGenerator[tuple[str, AsyncEngine], None]:
    """SQLite file upgraded to head, plus an engine on it."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'migrated.db'}"
    await _run_alembic(url, "upgrade", "head")
    engine = create_async_engine(url)
    yield url, engine
    await engine.dispose()


async def _indexes(engine: AsyncEngine, table: str) -> dict[str, dict]:
    async with engine.connect() as conn:
        found = await conn.run_sync(lambda c: inspect(c).get_indexes(table))
    return {index["name"]: index for index in found}


async def _tables(engine: AsyncEngine) -> set[str]:
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda c: inspect(c).get_table_names()))


class TestUpgrade:
    """alembic upgrade head on an empty database."""

    async def test_creates_auth_tables(self, migrated):
        _, engine = migrated
        assert {"users", "otp_codes", "user_sessions"} <= await _tables(engine)

    async def test_creates_partial_unique_indexes(self, migrated):
        _, engine = migrated
        users = await _indexes(engine, "users")
        codes = await _indexes(engine, "otp_codes")

        assert users["uq_users_email_active"]["unique"]
        assert codes["uq_otp_codes_active_email"]["unique"]

    async def test_session_column_holds_hash(self, migrated):
        _, engine = migrated
        async with engine.connect() as conn:
            found = await conn.run_sync(
                lambda c: inspect(c).get_columns("user_sessions")
            )
        columns = {column["name"] for column in found}
        assert "token_hash" in columns
        assert "session_token" not in columns


class TestConstraints:
    """The migrated schema enforces the per-email invariants."""

    async def test_second_unused_code_rejected(self, migrated):
        _, engine = migrated
        user_id = uuid.uuid4().hex
        async with engine.begin() as conn:
            await conn.execute(
                _INSERT_USER, {"id": user_id, "email": "a@x.com", "is_deleted": False}
            )
            await conn.execute(
                _INSERT_CODE,
                {
                    "id": uuid.uuid4().hex,
                    "user_id": user_id,
                    "email": "a@x.com",
                    "code": "111111",
                    "is_used": False,
                },
            )

        with pytest.raises(IntegrityError):
            async with engine.begin() as conn:
                await conn.execute(
                    _INSERT_CODE,
                    {
                        "id": uuid.uuid4().hex,
                        "user_id": user_id,
                        "email": "a@x.com",
                        "code": "222222",
                        "is_used": False,
                    },
                )

    async def test_deleted_user_email_reusable(self, migrated):
        _, engine = migrated
        async with engine.begin() as conn:
            await conn.execute(
                _INSERT_USER,
                {"id": uuid.uuid4().hex, "email": "b@x.com", "is_deleted": True},
            )
            await conn.execute(
                _INSERT_USER,
                {"id": uuid.uuid4().hex, "email": "b@x.com", "is_deleted": False},
            )

        with pytest.raises(IntegrityError):
            async with engine.begin() as conn:
                await conn.execute(
                    _INSERT_USER,
                    {"id": uuid.uuid4().hex, "email": "b@x.com", "is_deleted": False},
                )


class TestDowngrade:
    """alembic downgrade base removes everything the revision created."""

    async def test_drops_auth_tables(self, migrated):
        url, engine = migrated
        await _run_alembic(url, "downgrade", "base")
        assert not {"users", "otp_codes", "user_sessions"} & await _tables(engine)
