"""Map a federated identity onto a local user row."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.user import User
from app.services.google_oauth import ExternalProfile

logger = logging.getLogger(__name__)


def apply_login(user: User, profile: ExternalProfile) -> None:
    """Refresh a returning user from a new federation pass.

    The display name is always overwritten. The refresh token is only replaced
    when this pass carried one: the provider issues it on first consent only,
    so an empty token here must never erase the stored one. Email is left as
    first recorded.
    """
    user.display_name = profile.display_name
    if profile.refresh_token:
        user.refresh_token = profile.refresh_token
    user.last_login_at = utcnow()


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def upsert_user(db: AsyncSession, profile: ExternalProfile) -> User:
    """Create the user on first login, otherwise update it. Returns the stored row."""
    user = await get_user_by_external_id(db, profile.external_id)
    if user:
        apply_login(user, profile)
        await db.commit()
        logger.info("Updated existing user %s", user.id)
        return user

    user = User(
        external_id=profile.external_id,
        display_name=profile.display_name,
        email=profile.email,
        refresh_token=profile.refresh_token,
        last_login_at=utcnow(),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the same external identity first
        await db.rollback()
        user = await get_user_by_external_id(db, profile.external_id)
        if user is None:
            raise
        apply_login(user, profile)
        await db.commit()
        logger.info("Updated existing user %s after concurrent insert", user.id)
        return user

    logger.info("Created new user %s", user.id)
    return user
