"""Module: api."""

# backend/app/api/v1/api.py
from fastapi import APIRouter

# Core operational routes.
from app.api.v1.routes.health import router as health_router
from app.api.v1.routes.imports import router as imports_router

# Directory routes used by frontend pages and admin reports.
from app.api.v1.routes.organisations import router as organisations_router
from app.api.v1.routes.categories import router as categories_router
from app.api.v1.routes.user_reports import router as user_reports_router



api_router = APIRouter()

# Register operational endpoints first for service-level concerns.
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(imports_router, prefix="/imports", tags=["imports"])

# Register business/domain endpoints consumed by the application UI.
api_router.include_router(organisations_router, prefix="/organisations", tags=["organisations"])
api_router.include_router(categories_router, prefix="/categories", tags=["categories"])
api_router.include_router(user_reports_router, prefix="/user_reports", tags=["user_reports"])
