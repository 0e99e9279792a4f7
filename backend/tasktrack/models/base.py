"""SQLAlchemy base classes and common mixins.

Defines the declarative base, a UTC-normalising timestamp type, and
reusable mixins for timestamp tracking and soft delete.
"""

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, func, text
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware timestamp that always round-trips as UTC.

    PostgreSQL returns aware values already; SQLite drops the offset, so
    results are re-tagged as UTC and binds are converted to UTC first.
    Naive datetimes are rejected on bind.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "Naive datetime passed to a UTC column"
            raise ValueError(msg)
        return value.astimezone(UTC)

    def process_result_value(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        datetime: UTCDateTime(),
    }


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns.

    Attributes:
        created_at: Timestamp when the record was created. Services set it
            from their clock; the server default covers raw inserts.
        updated_at: Timestamp when the record was last modified.
    """

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin that adds soft delete capability.

    Records are not physically deleted; instead is_deleted is set and
    deleted_at records when. Queries filter out deleted records by default.

    Attributes:
        is_deleted: True once the record has been soft deleted.
        deleted_at: Timestamp when the record was soft deleted.
            None if the record is active.
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
        default=None,
    )
