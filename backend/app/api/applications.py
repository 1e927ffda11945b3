"""Job application API endpoints. All routes require a logged-in user."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies.auth import require_user_api
from app.models.base import get_db
from app.models.user import User
from app.schemas.application import ApplicationRead, ApplicationWrite
from app.services import application_service

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("", response_model=list[ApplicationRead])
async def list_applications(
    user: User = Depends(require_user_api),
    db: AsyncSession = Depends(get_db),
):
    """All of the user's applications, most recent first."""
    return await application_service.list_applications(db, user.id)


@router.post("", response_model=ApplicationRead, status_code=201)
async def create_application(
    body: ApplicationWrite,
    user: User = Depends(require_user_api),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.create_application(db, user.id, body)


@router.put("/{application_id}", response_model=ApplicationRead)
async def update_application(
    application_id: str,
    body: ApplicationWrite,
    user: User = Depends(require_user_api),
    db: AsyncSession = Depends(get_db),
):
    """Replace all editable fields on an application the user owns."""
    return await application_service.update_application(db, user.id, application_id, body)


@router.delete("/{application_id}", status_code=204)
async def delete_application(
    application_id: str,
    user: User = Depends(require_user_api),
    db: AsyncSession = Depends(get_db),
):
    await application_service.delete_application(db, user.id, application_id)
    return Response(status_code=204)
