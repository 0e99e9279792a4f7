"""Tests for UserRepository.

Soft-deleted users are invisible to lookups, and only whitelisted fields
can be updated.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.models.user import User
from tasktrack.repositories.user_repository import UserRepository
from tests.conftest import CLOCK_START

_EMAIL = "repo@example.com"


class TestCreate:
    """Tests for UserRepository.create()."""

    async def test_creates_user_with_timestamps(self, db_session: AsyncSession):
        """New users get an id and the caller's creation time."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START, full_name="Repo"
        )
        assert isinstance(user.id, uuid.UUID)
        assert user.created_at == CLOCK_START
        assert user.full_name == "Repo"
        assert user.is_deleted is False

    async def test_duplicate_active_email_rejected(self, db_session: AsyncSession):
        """Two active users cannot share an email."""
        await UserRepository.create(db_session, email=_EMAIL, created_at=CLOCK_START)
        with pytest.raises(IntegrityError):
            await UserRepository.create(
                db_session, email=_EMAIL, created_at=CLOCK_START
            )

    async def test_email_reusable_after_soft_delete(self, db_session: AsyncSession):
        """A soft-deleted user's email can belong to a new user."""
        first = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        await UserRepository.soft_delete(db_session, first.id, deleted_at=CLOCK_START)
        second = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        assert second.id != first.id


class TestLookups:
    """Tests for get_by_id() and get_by_email()."""

    async def test_get_by_email_is_exact(self, db_session: AsyncSession):
        """Lookup does not fold case."""
        await UserRepository.create(db_session, email=_EMAIL, created_at=CLOCK_START)
        assert await UserRepository.get_by_email(db_session, _EMAIL) is not None
        assert await UserRepository.get_by_email(db_session, _EMAIL.upper()) is None

    async def test_soft_deleted_user_hidden(self, db_session: AsyncSession):
        """Neither lookup returns a soft-deleted user."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        assert await UserRepository.soft_delete(
            db_session, user.id, deleted_at=CLOCK_START
        )
        assert await UserRepository.get_by_id(db_session, user.id) is None
        assert await UserRepository.get_by_email(db_session, _EMAIL) is None

    async def test_unknown_id_returns_none(self, db_session: AsyncSession):
        """Missing users return None."""
        assert await UserRepository.get_by_id(db_session, uuid.uuid4()) is None


class TestUpdate:
    """Tests for UserRepository.update()."""

    async def test_updates_allowed_field(self, db_session: AsyncSession):
        """full_name can be changed."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        updated = await UserRepository.update(db_session, user.id, full_name="New")
        assert updated is not None
        assert updated.full_name == "New"

    async def test_rejects_unknown_field(self, db_session: AsyncSession):
        """Fields outside the whitelist raise ValueError."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        with pytest.raises(ValueError, match="email"):
            await UserRepository.update(db_session, user.id, email="x@example.com")

    async def test_missing_user_returns_none(self, db_session: AsyncSession):
        """Updating an unknown id returns None."""
        assert (
            await UserRepository.update(db_session, uuid.uuid4(), full_name="X")
            is None
        )


class TestSoftDelete:
    """Tests for UserRepository.soft_delete()."""

    async def test_sets_flag_and_timestamp(self, db_session: AsyncSession):
        """Row is kept with is_deleted and deleted_at set."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        await UserRepository.soft_delete(db_session, user.id, deleted_at=CLOCK_START)

        row = await db_session.get(User, user.id, populate_existing=True)
        assert row is not None
        assert row.is_deleted is True
        assert row.deleted_at == CLOCK_START

    async def test_second_delete_returns_false(self, db_session: AsyncSession):
        """Deleting an already deleted user matches nothing."""
        user = await UserRepository.create(
            db_session, email=_EMAIL, created_at=CLOCK_START
        )
        assert await UserRepository.soft_delete(
            db_session, user.id, deleted_at=CLOCK_START
        )
        assert not await UserRepository.soft_delete(
            db_session, user.id, deleted_at=CLOCK_START
        )
