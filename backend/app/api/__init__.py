"""JSON API router aggregation."""

from fastapi import APIRouter

from app.api.session import router as session_router
from app.api.applications import router as applications_router

router = APIRouter(prefix="/api")

router.include_router(session_router)
router.include_router(applications_router)
