"""Module: organisation."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, SoftDeleteMixin, utcnow


# Charity/service listed in the directory, imported from the charity register or edited by admins.
class Organisation(SoftDeleteMixin, Base):
    __tablename__ = "organisations"
    __table_args__ = (
        CheckConstraint(
            "(latitude IS NULL AND longitude IS NULL) OR (latitude IS NOT NULL AND longitude IS NOT NULL)",
            name="ck_organisations_coordinates_pair",
        ),
    )

    organisation_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=True)

    address: Mapped[str] = mapped_column(String, nullable=True)
    postcode: Mapped[str] = mapped_column(String, nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=True)
    longitude: Mapped[float] = mapped_column(Float, nullable=True)

    website: Mapped[str] = mapped_column(String, nullable=True)
    donation_info: Mapped[str] = mapped_column(String, nullable=True)
    telephone: Mapped[str] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    categories = relationship("Category", secondary="category_organisations", back_populates="organisations")
    users = relationship(
        "User",
        primaryjoin="and_(User.organisation_id == Organisation.organisation_id, User.deleted_at.is_(None))",
        foreign_keys="User.organisation_id",
        viewonly=True,
    )

    @property
    def not_geocoded(self) -> bool:
        return self.latitude is None or self.longitude is None
