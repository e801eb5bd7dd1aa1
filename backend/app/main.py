"""Module: main."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exceptions import DuplicateOrganisation, MalformedImportRow, PermissionDenied, RecordNotFound
from app.core.logging_config import configure_logging
from app.db.init_db import init_db

configure_logging(settings.log_level)

app = FastAPI(title="Charity Directory API", version="0.1.0")

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Map service-layer errors onto HTTP status codes.
@app.exception_handler(PermissionDenied)
def permission_denied_handler(request: Request, exc: PermissionDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(RecordNotFound)
def record_not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateOrganisation)
def duplicate_organisation_handler(request: Request, exc: DuplicateOrganisation):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(MalformedImportRow)
def malformed_row_handler(request: Request, exc: MalformedImportRow):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


init_db()
