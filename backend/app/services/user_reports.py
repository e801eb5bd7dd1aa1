"""Module: user_reports.

Superadmin tooling around users: listing, admin-status requests and
approvals, deletion, and organisation invitations. Invitation delivery is
handled by the mailer; here it is only recorded and logged.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from secrets import token_urlsafe

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.exceptions import PermissionDenied, RecordNotFound
from app.db.base import utcnow
from app.db.models.organisation import Organisation
from app.db.models.user import User
from app.services.organisations import get_organisation

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

INVITED = "Invited!"
INVALID_EMAIL = "Error: Email is invalid"
EMAIL_TAKEN = "Error: Email has already been taken"
ORGANISATION_MISSING = "Error: Organisation not found"


def users_query(include_deleted: bool = False) -> Select:
    stmt = select(User)
    if not include_deleted:
        stmt = stmt.where(User.active_clause())
    return stmt


def get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.execute(users_query().where(User.user_id == user_id)).scalar_one_or_none()
    if user is None:
        raise RecordNotFound("User not found")
    return user


def find_user_by_email(db: Session, email: str, include_deleted: bool = False) -> User | None:
    stmt = users_query(include_deleted).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalar_one_or_none()


def list_users(db: Session, ctx: RequestContext) -> list[User]:
    ctx.require_superadmin()
    return db.execute(users_query().order_by(User.email)).scalars().all()


def request_admin_status(db: Session, ctx: RequestContext, user_id: uuid.UUID, organisation_id: uuid.UUID) -> str:
    current = ctx.require_user()
    if current.user_id != user_id and not ctx.is_superadmin:
        raise PermissionDenied("You can only request admin status for yourself")

    user = get_user(db, user_id)
    org = get_organisation(db, organisation_id)
    user.pending_organisation_id = org.organisation_id
    db.commit()
    return f"You have requested admin status for {org.name}"


def approve_admin(db: Session, ctx: RequestContext, user_id: uuid.UUID) -> str:
    ctx.require_superadmin()
    user = get_user(db, user_id)
    if user.pending_organisation_id is not None:
        user.organisation_id = user.pending_organisation_id
        user.pending_organisation_id = None
    db.commit()
    return f"You have approved {user.email}."


def delete_user(db: Session, ctx: RequestContext, user_id: uuid.UUID) -> bool:
    """Soft-delete a user; the acting superadmin can never delete themselves."""
    current = ctx.require_superadmin()
    if current.user_id == user_id:
        return False
    user = get_user(db, user_id)
    user.soft_delete()
    db.commit()
    return True


def invited_not_accepted(db: Session) -> list[User]:
    return db.execute(
        users_query().where(
            User.invitation_sent_at.is_not(None),
            User.invitation_accepted_at.is_(None),
            User.organisation_id.is_not(None),
        ).order_by(User.invitation_sent_at)
    ).scalars().all()


def invited_report(db: Session, ctx: RequestContext) -> list[dict]:
    ctx.require_superadmin()
    return [
        {
            "id": str(user.organisation.organisation_id),
            "name": user.organisation.name,
            "email": user.email,
            "date": user.invitation_sent_at,
        }
        for user in invited_not_accepted(db)
    ]


def batch_invite(
    db: Session,
    ctx: RequestContext,
    invite_list: Mapping[str, str],
    resend_invitation: bool = False,
) -> dict[str, str]:
    """Invite one email per organisation id; returns a status message per id."""
    ctx.require_superadmin()
    results: dict[str, str] = {}

    for raw_org_id, raw_email in invite_list.items():
        key = str(raw_org_id)
        email = (raw_email or "").strip().lower()
        if not EMAIL_RE.match(email):
            results[key] = INVALID_EMAIL
            continue

        existing = find_user_by_email(db, email, include_deleted=True)
        if existing is not None:
            if resend_invitation and existing.invited_not_accepted and not existing.is_deleted:
                existing.invitation_token = token_urlsafe(24)
                existing.invitation_sent_at = utcnow()
                db.flush()
                logger.info("Re-sent invitation to %s", email)
                results[key] = INVITED
            else:
                results[key] = EMAIL_TAKEN
            continue

        org = _find_organisation(db, key)
        if org is None:
            results[key] = ORGANISATION_MISSING
            continue

        db.add(
            User(
                email=email,
                organisation_id=org.organisation_id,
                invitation_token=token_urlsafe(24),
                invitation_sent_at=utcnow(),
            )
        )
        db.flush()
        logger.info("Invitation for %s (%s) queued for delivery", email, org.name)
        results[key] = INVITED

    db.commit()
    return results


def accept_invitation(db: Session, token: str, full_name: str | None = None) -> User:
    user = db.execute(users_query().where(User.invitation_token == token)).scalar_one_or_none()
    if user is None or user.invitation_accepted_at is not None:
        raise RecordNotFound("Invitation not found")
    user.invitation_accepted_at = utcnow()
    user.invitation_token = None
    if full_name:
        user.full_name = full_name
    db.commit()
    return user


def _find_organisation(db: Session, raw_id: str) -> Organisation | None:
    try:
        organisation_id = uuid.UUID(raw_id)
    except ValueError:
        return None
    try:
        return get_organisation(db, organisation_id)
    except RecordNotFound:
        return None
