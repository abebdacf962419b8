# app/api/v1/__init__.py

from fastapi import APIRouter

from app.api.v1.jobs import router as jobs_router
from app.api.v1.health import router as health_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include all sub-routers
api_router.include_router(
    jobs_router,
    prefix="",  # jobs router already has /jobs prefix
)

api_router.include_router(
    health_router,
    prefix="",  # health router already has /health prefix
    tags=["monitoring"]
)

__all__ = ["api_router"]
