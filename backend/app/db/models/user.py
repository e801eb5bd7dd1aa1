import uuid
from sqlalchemy import Boolean, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from app.db.base import Base, SoftDeleteMixin, utcnow

class User(SoftDeleteMixin, Base):
    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=True)
    superadmin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Organisation this user administers, and the one they asked to administer.
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organisations.organisation_id", ondelete="SET NULL"),
        nullable=True
    )
    pending_organisation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organisations.organisation_id", ondelete="SET NULL"),
        nullable=True
    )

    invitation_token: Mapped[str] = mapped_column(String, nullable=True, unique=True)
    invitation_sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    invitation_accepted_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow
    )

    organisation = relationship("Organisation", foreign_keys=[organisation_id])
    pending_organisation = relationship("Organisation", foreign_keys=[pending_organisation_id])

    @property
    def invited_not_accepted(self) -> bool:
        return self.invitation_sent_at is not None and self.invitation_accepted_at is None
