"""Module: organisations."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.v1.routes.deps import get_db, get_geocoder, get_request_context, parse_uuid
from app.core.context import RequestContext
from app.core.exceptions import PermissionDenied
from app.db.models.organisation import Organisation
from app.services import organisations as org_service
from app.services.geocoding import Geocoder

router = APIRouter()


class OrganisationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None
    postcode: str | None = None
    website: str | None = None
    donation_info: str | None = None
    telephone: str | None = None
    email: str | None = None


def _as_dict(org: Organisation) -> dict:
    return {
        "id": str(org.organisation_id),
        "name": org.name,
        "description": org.description,
        "address": org.address,
        "postcode": org.postcode,
        "latitude": org.latitude,
        "longitude": org.longitude,
        "website": org.website,
        "donation_info": org.donation_info,
        "telephone": org.telephone,
        "email": org.email,
        "category_ids": [str(c.category_id) for c in org.categories],
        "updated_at": org.updated_at,
        "deleted": org.is_deleted,
    }


def _ensure_can_edit(ctx: RequestContext, org: Organisation) -> None:
    user = ctx.require_user()
    if not user.superadmin and user.organisation_id != org.organisation_id:
        raise PermissionDenied("You must be an admin of this organisation to edit it")


# Endpoint: handles HTTP request/response mapping for this route.
@router.get("", summary="Search organisations by keyword and category")
def list_organisations(
    q: str | None = Query(default=None),
    category_id: str | None = Query(default=None),
    include_deleted: bool = False,
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    if include_deleted:
        ctx.require_superadmin()
    stmt = org_service.organisations_query(include_deleted)
    stmt = org_service.filter_by_category(org_service.search_by_keyword(stmt, q), category_id)
    rows = db.execute(stmt.order_by(Organisation.name).offset(offset).limit(limit)).scalars().all()
    return [_as_dict(org) for org in rows]


# Endpoint: organisations with an email but no admin, candidates for invitations.
@router.get("/orphans", summary="Organisations without admins that can be invited")
def list_orphans(db: Session = Depends(get_db), ctx: RequestContext = Depends(get_request_context)):
    ctx.require_superadmin()
    return [{"id": str(org.organisation_id), "name": org.name, "email": org.email} for org in org_service.orphan_organisations(db)]


@router.get("/{organisation_id}", summary="Organisation detail")
def get_organisation(organisation_id: str, db: Session = Depends(get_db)):
    org = org_service.get_organisation(db, parse_uuid(organisation_id, "organisation_id"))
    return _as_dict(org)


@router.get("/{organisation_id}/marker", summary="Map marker for an organisation")
def get_marker(organisation_id: str, db: Session = Depends(get_db)):
    org = org_service.get_organisation(db, parse_uuid(organisation_id, "organisation_id"))
    marker = org_service.map_marker(org)
    return {"icon": marker.icon, "data-id": str(marker.organisation_id), "class": marker.css_class}


@router.post("", status_code=201, summary="Create organisation")
def create_organisation(
    payload: OrganisationCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    geocoder: Geocoder | None = Depends(get_geocoder),
):
    ctx.require_superadmin()
    org_service.ensure_name_available(db, payload.name)
    org = org_service.save_organisation(db, Organisation(**payload.model_dump()), geocoder)
    return _as_dict(org)


@router.patch("/{organisation_id}", summary="Update organisation fields")
def update_organisation(
    organisation_id: str,
    payload: org_service.OrganisationUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    geocoder: Geocoder | None = Depends(get_geocoder),
):
    org = org_service.get_organisation(db, parse_uuid(organisation_id, "organisation_id"))
    _ensure_can_edit(ctx, org)
    org = org_service.update_organisation(db, org, payload, geocoder)
    return _as_dict(org)


@router.delete("/{organisation_id}", status_code=204, summary="Soft-delete organisation")
def delete_organisation(
    organisation_id: str,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    ctx.require_superadmin()
    org = org_service.get_organisation(db, parse_uuid(organisation_id, "organisation_id"))
    org_service.delete_organisation(db, org)


@router.post("/{organisation_id}/restore", summary="Restore a soft-deleted organisation")
def restore_organisation(
    organisation_id: str,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    ctx.require_superadmin()
    org = org_service.restore_organisation(db, parse_uuid(organisation_id, "organisation_id"))
    return _as_dict(org)
