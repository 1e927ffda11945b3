"""Web routes for HTML pages."""

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies.auth import get_current_user
from app.models.application import ApplicationStatus
from app.models.base import get_db
from app.models.user import User
from app.services.application_service import list_applications

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Login screen for anonymous visitors, application dashboard otherwise."""
    applications = await list_applications(db, user.id) if user else []
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "current_user": user,
            "applications": applications,
            "statuses": [s.value for s in ApplicationStatus],
        },
    )
