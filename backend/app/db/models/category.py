"""Module: category."""

import uuid

from sqlalchemy import Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


# Directory classification, keyed by the charity commission's numeric classification code.
class Category(Base):
    __tablename__ = "categories"

    category_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    charity_commission_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    organisations = relationship("Organisation", secondary="category_organisations", back_populates="categories")
