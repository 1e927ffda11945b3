"""Ownership-scoped CRUD over the applications table.

Every lookup filters on both the application id and the caller's user id, so a
row owned by someone else is indistinguishable from a row that does not exist.
"""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ApplicationNotFoundError, ValidationFailedError
from app.models.application import Application, ApplicationStatus, DEFAULT_STATUS
from app.schemas.application import ApplicationWrite

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("company_name", "job_title")
_STATUSES = [s.value for s in ApplicationStatus]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_fields(data: ApplicationWrite) -> dict:
    """Check required fields and status, returning column values ready to store."""
    values = {
        "company_name": _clean(data.company_name),
        "job_title": _clean(data.job_title),
        "job_url": _clean(data.job_url),
        "status": _clean(data.status) or DEFAULT_STATUS,
        "notes": data.notes if data.notes else None,
    }

    missing = [name for name in REQUIRED_FIELDS if not values[name]]
    if missing:
        raise ValidationFailedError(f"{' and '.join(missing)} required.", fields=missing)

    if values["status"] not in _STATUSES:
        raise ValidationFailedError(
            f"status must be one of: {', '.join(_STATUSES)}.", fields=["status"]
        )
    return values


def _parse_id(application_id: str | uuid.UUID) -> uuid.UUID:
    if isinstance(application_id, uuid.UUID):
        return application_id
    try:
        return uuid.UUID(application_id)
    except (ValueError, TypeError):
        raise ApplicationNotFoundError()


async def list_applications(db: AsyncSession, user_id: uuid.UUID) -> list[Application]:
    """All of a user's applications, newest first."""
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def create_application(db: AsyncSession, user_id: uuid.UUID, data: ApplicationWrite) -> Application:
    values = validate_fields(data)
    application = Application(user_id=user_id, **values)
    db.add(application)
    await db.commit()
    await db.refresh(application)
    logger.info("User %s created application %s", user_id, application.id)
    return application


async def get_owned_application(
    db: AsyncSession, user_id: uuid.UUID, application_id: str | uuid.UUID
) -> Application:
    result = await db.execute(
        select(Application).where(
            Application.id == _parse_id(application_id),
            Application.user_id == user_id,
        )
    )
    application = result.scalar_one_or_none()
    if not application:
        raise ApplicationNotFoundError()
    return application


async def update_application(
    db: AsyncSession, user_id: uuid.UUID, application_id: str | uuid.UUID, data: ApplicationWrite
) -> Application:
    """Replace every editable field. The owner never changes."""
    values = validate_fields(data)
    application = await get_owned_application(db, user_id, application_id)
    for field, value in values.items():
        setattr(application, field, value)
    await db.commit()
    await db.refresh(application)
    logger.info("User %s updated application %s", user_id, application.id)
    return application


async def delete_application(db: AsyncSession, user_id: uuid.UUID, application_id: str | uuid.UUID) -> None:
    result = await db.execute(
        delete(Application).where(
            Application.id == _parse_id(application_id),
            Application.user_id == user_id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ApplicationNotFoundError()
    await db.commit()
    logger.info("User %s deleted application %s", user_id, application_id)
