"""Module: organisations."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import BaseModel, field_validator
from sqlalchemy import Select, false, func, inspect, or_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DuplicateOrganisation, RecordNotFound
from app.db.base import utcnow
from app.db.models.category import Category
from app.db.models.organisation import Organisation
from app.db.models.user import User
from app.services.geocoding import Geocoder, apply_geocoding

logger = logging.getLogger(__name__)

URL_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

SMALL_MARKER_ICON = "https://maps.gstatic.com/intl/en_ALL/mapfiles/markers2/measle.png"
LARGE_MARKER_ICON = "http://mt.googleapis.com/vt/icon/name=icons/spotlight/spotlight-poi.png"


class OrganisationUpdate(BaseModel):
    """Fields an admin may change; unset fields are left alone."""

    name: str | None = None
    description: str | None = None
    address: str | None = None
    postcode: str | None = None
    website: str | None = None
    donation_info: str | None = None
    telephone: str | None = None
    email: str | None = None
    superadmin_email_to_add: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str:
        # name may be omitted, but never cleared
        if value is None or not value.strip():
            raise ValueError("name cannot be blank")
        return value.strip()


@dataclass(frozen=True)
class MapMarker:
    icon: str
    css_class: str
    organisation_id: uuid.UUID


# -------------------------
# Queries
# -------------------------
def organisations_query(include_deleted: bool = False) -> Select:
    stmt = select(Organisation)
    if not include_deleted:
        stmt = stmt.where(Organisation.active_clause())
    return stmt


def get_organisation(db: Session, organisation_id: uuid.UUID, include_deleted: bool = False) -> Organisation:
    org = db.execute(
        organisations_query(include_deleted).where(Organisation.organisation_id == organisation_id)
    ).scalar_one_or_none()
    if org is None:
        raise RecordNotFound("Organisation not found")
    return org


def find_by_name(db: Session, name: str, include_deleted: bool = False) -> Organisation | None:
    stmt = organisations_query(include_deleted).where(func.lower(Organisation.name) == name.strip().lower())
    return db.execute(stmt.limit(1)).scalars().first()


def ensure_name_available(db: Session, name: str, org: Organisation | None = None) -> None:
    """Raise DuplicateOrganisation if another active organisation has this name (any case)."""
    stmt = organisations_query().where(func.lower(Organisation.name) == name.strip().lower())
    if org is not None:
        stmt = stmt.where(Organisation.organisation_id != org.organisation_id)
    if db.execute(stmt.limit(1)).scalars().first() is not None:
        raise DuplicateOrganisation(name.strip())


def search_by_keyword(stmt: Select, keyword: str | None) -> Select:
    if keyword is None or not keyword.strip():
        return stmt
    needle = keyword.strip().lower()
    return stmt.where(
        or_(
            func.lower(Organisation.name).contains(needle, autoescape=True),
            func.lower(func.coalesce(Organisation.description, "")).contains(needle, autoescape=True),
        )
    )


def filter_by_category(stmt: Select, category_id: str | uuid.UUID | None) -> Select:
    if category_id is None or category_id == "":
        return stmt
    try:
        cid = category_id if isinstance(category_id, uuid.UUID) else uuid.UUID(str(category_id))
    except ValueError:
        # Junk ids (e.g. from infinite scroll query strings) match nothing.
        return stmt.where(false())
    return stmt.where(Organisation.categories.any(Category.category_id == cid))


def _has_user_clause():
    return (
        select(User.user_id)
        .where(User.organisation_id == Organisation.organisation_id, User.active_clause())
        .exists()
    )


def not_null_email(stmt: Select) -> Select:
    return stmt.where(Organisation.email.is_not(None), Organisation.email != "")


def null_users(stmt: Select) -> Select:
    return stmt.where(~_has_user_clause())


def without_matching_user_emails(stmt: Select) -> Select:
    matching = select(User.user_id).where(func.lower(User.email) == func.lower(Organisation.email)).exists()
    return stmt.where(~matching)


def orphan_organisations(db: Session) -> list[Organisation]:
    # Organisations nobody administers yet but that have an email we could invite.
    stmt = without_matching_user_emails(not_null_email(null_users(organisations_query())))
    return db.execute(stmt.order_by(Organisation.name)).scalars().all()


# -------------------------
# Record helpers
# -------------------------
def with_url_scheme(url: str | None, scheme: str | None = None) -> str | None:
    if url is None:
        return None
    cleaned = url.strip()
    if not cleaned or URL_SCHEME_RE.match(cleaned):
        return cleaned
    return f"{scheme or settings.default_url_scheme}{cleaned}"


def not_updated_recently(org: Organisation, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return org.updated_at < now - timedelta(days=settings.stale_after_days)


def not_updated_recently_or_has_no_owner(org: Organisation, now: datetime | None = None) -> bool:
    return not org.users or not_updated_recently(org, now)


def map_marker(org: Organisation, now: datetime | None = None) -> MapMarker:
    if not_updated_recently_or_has_no_owner(org, now):
        return MapMarker(icon=SMALL_MARKER_ICON, css_class="measle", organisation_id=org.organisation_id)
    return MapMarker(icon=LARGE_MARKER_ICON, css_class="marker", organisation_id=org.organisation_id)


def _email_changed(org: Organisation) -> bool:
    state = inspect(org)
    return state.persistent and state.attrs.email.history.has_changes()


def uninvite_users(db: Session, org: Organisation) -> int:
    """Detach invited-but-not-accepted users from the organisation."""
    users = db.execute(
        select(User).where(
            User.organisation_id == org.organisation_id,
            User.invitation_sent_at.is_not(None),
            User.invitation_accepted_at.is_(None),
            User.active_clause(),
        )
    ).scalars().all()
    for user in users:
        user.organisation_id = None
    if users:
        logger.info("Uninvited %d user(s) from %r after email change", len(users), org.name)
    return len(users)


# -------------------------
# Writes
# -------------------------
def save_organisation(db: Session, org: Organisation, geocoder: Geocoder | None = None) -> Organisation:
    """Normalize links, geocode when needed, and commit."""
    org.website = with_url_scheme(org.website)
    org.donation_info = with_url_scheme(org.donation_info)

    if geocoder is not None:
        apply_geocoding(org, geocoder)
    if _email_changed(org):
        uninvite_users(db, org)

    db.add(org)
    db.commit()
    return org


def update_organisation(
    db: Session,
    org: Organisation,
    changes: OrganisationUpdate,
    geocoder: Geocoder | None = None,
) -> Organisation:
    """
    Apply explicit field changes and optionally make a user the organisation's admin.

    An unknown ``superadmin_email_to_add`` aborts the whole update.
    """
    admin = None
    admin_email = (changes.superadmin_email_to_add or "").strip()
    if admin_email:
        admin = db.execute(
            select(User).where(func.lower(User.email) == admin_email.lower(), User.active_clause())
        ).scalar_one_or_none()
        if admin is None:
            raise RecordNotFound(f"The user email you entered,'{admin_email}', does not exist in the system")

    if "name" in changes.model_fields_set:
        ensure_name_available(db, changes.name, org)

    for field, value in changes.model_dump(exclude_unset=True, exclude={"superadmin_email_to_add"}).items():
        setattr(org, field, value)

    if admin is not None:
        admin.organisation_id = org.organisation_id
        admin.pending_organisation_id = None

    return save_organisation(db, org, geocoder)


def delete_organisation(db: Session, org: Organisation) -> None:
    org.soft_delete()
    db.commit()


def restore_organisation(db: Session, organisation_id: uuid.UUID) -> Organisation:
    org = get_organisation(db, organisation_id, include_deleted=True)
    if org.is_deleted:
        ensure_name_available(db, org.name, org)
    org.restore()
    db.commit()
    return org
