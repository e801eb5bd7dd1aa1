"""Module: base."""

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    # Naive UTC so values compare cleanly on both SQLite and PostgreSQL.
    return datetime.now(UTC).replace(tzinfo=None)


# Shared SQLAlchemy declarative base that all ORM models inherit from.
# This gives each model access to common metadata for table creation/migrations.
class Base(DeclarativeBase):
    pass


# Soft-delete columns/helpers shared by organisations and users.
# Rows with deleted_at set are hidden by the active-only query helpers.
class SoftDeleteMixin:
    deleted_at: Mapped[datetime] = mapped_column(DateTime, nullable=True, default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None

    @classmethod
    def active_clause(cls):
        return cls.deleted_at.is_(None)
