"""Module: categories."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.v1.routes.deps import get_db
from app.db.models.category import Category
from app.db.models.category_organisation import CategoryOrganisation
from app.db.models.organisation import Organisation

router = APIRouter()


# Endpoint: category catalogue with active organisation counts.
@router.get("", summary="List categories")
def list_categories(db: Session = Depends(get_db)):
    rows = db.execute(
        select(
            Category.category_id.label("id"),
            Category.name.label("name"),
            Category.charity_commission_id.label("charity_commission_id"),
            func.count(Organisation.organisation_id).label("organisation_count"),
        )
        .select_from(Category)
        .outerjoin(CategoryOrganisation, CategoryOrganisation.category_id == Category.category_id)
        .outerjoin(
            Organisation,
            (Organisation.organisation_id == CategoryOrganisation.organisation_id) & Organisation.active_clause(),
        )
        .group_by(Category.category_id, Category.name, Category.charity_commission_id)
        .order_by(Category.name)
    ).mappings().all()
    out = []
    for r in rows:
        d = dict(r)
        d["id"] = str(d["id"])
        out.append(d)
    return out
