"""Module: imports."""

import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app.api.v1.routes.deps import get_db, get_geocoder, get_request_context
from app.core.context import RequestContext
from app.services import charity_import
from app.services.geocoding import Geocoder

router = APIRouter()

DEFAULT_LIMIT = 1000


def _spool(upload: UploadFile) -> Path:
    # Importers read from disk in the configured encoding, so persist the upload first.
    with tempfile.NamedTemporaryFile(delete=False, suffix=".csv") as tmp:
        shutil.copyfileobj(upload.file, tmp)
        return Path(tmp.name)


def _as_dict(result: charity_import.ImportResult) -> dict:
    return {"attempted": result.attempted, "succeeded": result.succeeded, "error": result.error}


def _run(upload: UploadFile, importer) -> dict:
    path = _spool(upload)
    try:
        return _as_dict(importer(path))
    finally:
        path.unlink(missing_ok=True)


# Endpoint: charity register rows -> organisations.
@router.post("/addresses", summary="Import organisations from a charity register CSV")
def import_addresses(
    file: UploadFile = File(...),
    limit: int = Form(DEFAULT_LIMIT, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    geocoder: Geocoder | None = Depends(get_geocoder),
):
    ctx.require_superadmin()
    return _run(file, lambda path: charity_import.import_addresses(db, path, limit, geocoder))


@router.post("/category-mappings", summary="Link organisations to categories from a register CSV")
def import_category_mappings(
    file: UploadFile = File(...),
    limit: int = Form(DEFAULT_LIMIT, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    ctx.require_superadmin()
    return _run(file, lambda path: charity_import.import_category_mappings(db, path, limit))


@router.post("/emails", summary="Fill in missing organisation emails")
def import_emails(
    file: UploadFile = File(...),
    limit: int = Form(DEFAULT_LIMIT, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    geocoder: Geocoder | None = Depends(get_geocoder),
):
    ctx.require_superadmin()
    return _run(file, lambda path: charity_import.import_emails(db, path, limit, geocoder))


@router.post("/categories", summary="Load the category catalogue")
def import_categories(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    ctx.require_superadmin()
    return _run(file, lambda path: charity_import.import_category_catalogue(db, path))
