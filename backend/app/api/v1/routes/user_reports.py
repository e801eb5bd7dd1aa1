"""Module: user_reports."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.routes.deps import get_db, get_request_context, parse_uuid
from app.core.context import RequestContext
from app.services import user_reports as user_service

router = APIRouter()


class InvitationRequest(BaseModel):
    # organisation id -> email to invite as that organisation's admin
    invite_list: dict[str, str]
    resend_invitation: bool = False


class AcceptInvitationRequest(BaseModel):
    full_name: str | None = None


# Endpoint: handles HTTP request/response mapping for this route.
@router.get("", summary="List all users (superadmin)")
def list_users(db: Session = Depends(get_db), ctx: RequestContext = Depends(get_request_context)):
    return [
        {
            "user_id": str(user.user_id),
            "email": user.email,
            "full_name": user.full_name,
            "superadmin": user.superadmin,
            "organisation_id": str(user.organisation_id) if user.organisation_id else None,
            "pending_organisation_id": str(user.pending_organisation_id) if user.pending_organisation_id else None,
        }
        for user in user_service.list_users(db, ctx)
    ]


@router.get("/invited", summary="Invited users who have not accepted yet")
def invited(db: Session = Depends(get_db), ctx: RequestContext = Depends(get_request_context)):
    return {"resend_invitation": True, "invitations": user_service.invited_report(db, ctx)}


@router.post("/invitations", summary="Invite organisation admins by email")
def invite(
    payload: InvitationRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    return user_service.batch_invite(db, ctx, payload.invite_list, payload.resend_invitation)


@router.post("/invitations/{token}/accept", summary="Accept an invitation")
def accept(token: str, payload: AcceptInvitationRequest, db: Session = Depends(get_db)):
    user = user_service.accept_invitation(db, token, payload.full_name)
    return {"user_id": str(user.user_id), "email": user.email}


@router.put("/{user_id}", summary="Request or approve organisation admin status")
def update_status(
    user_id: str,
    organisation_id: str | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    uid = parse_uuid(user_id, "user_id")
    if organisation_id is not None:
        notice = user_service.request_admin_status(db, ctx, uid, parse_uuid(organisation_id, "organisation_id"))
    else:
        notice = user_service.approve_admin(db, ctx, uid)
    return {"notice": notice}


@router.delete("/{user_id}", summary="Delete a user")
def destroy(user_id: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_request_context)):
    deleted = user_service.delete_user(db, ctx, parse_uuid(user_id, "user_id"))
    if not deleted:
        raise HTTPException(status_code=400, detail="You cannot delete yourself")
    return {"deleted": True}
