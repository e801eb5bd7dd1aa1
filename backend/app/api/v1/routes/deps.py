"""Module: deps."""

import uuid
from typing import Generator

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.db.models.user import User
from app.db.session import SessionLocal
from app.services.geocoding import Geocoder, get_geocoder as _configured_geocoder

# Dependency provider: one DB session per request lifecycle.
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Validate and coerce UUID inputs from query/path payloads.
def parse_uuid(value: str, field_name: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field_name} (must be UUID)")


# Dependency provider: acting user for this request, taken from the X-User-Id header.
def get_request_context(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> RequestContext:
    if not x_user_id:
        return RequestContext()
    uid = parse_uuid(x_user_id, "X-User-Id")
    user = db.execute(select(User).where(User.user_id == uid, User.active_clause())).scalar_one_or_none()
    return RequestContext(current_user=user)


def get_geocoder() -> Geocoder | None:
    return _configured_geocoder()
