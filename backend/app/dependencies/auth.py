"""Session and authentication dependencies for FastAPI routes."""

import logging
import secrets
import uuid

from fastapi import Depends, Request, Response
from itsdangerous import BadSignature, TimestampSigner
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import NotAuthenticatedError
from app.models.base import get_db
from app.models.user import User
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def get_session_store(request: Request) -> SessionStore:
    """The process-wide store created at startup."""
    return request.app.state.session_store


def _signer(salt: str) -> TimestampSigner:
    return TimestampSigner(get_settings().secret_key, salt=salt)


def sign_value(value: str, salt: str = "session") -> str:
    return _signer(salt).sign(value).decode("utf-8")


def unsign_value(signed: str, max_age: int, salt: str = "session") -> str | None:
    """Return the original value, or None if tampered with or too old."""
    try:
        return _signer(salt).unsign(signed, max_age=max_age).decode("utf-8")
    except BadSignature:
        return None


def _session_token(request: Request) -> str | None:
    settings = get_settings()
    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        return None
    return unsign_value(cookie, settings.session_max_age)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> User | None:
    """Return the logged-in user or None."""
    token = _session_token(request)
    if not token:
        return None
    user_id = await store.get(token)
    if not user_id:
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_user_api(user: User | None = Depends(get_current_user)) -> User:
    """Return the logged-in user or raise 401."""
    if not user:
        raise NotAuthenticatedError()
    return user


async def start_session(response: Response, store: SessionStore, user_id: uuid.UUID) -> None:
    """Create a server-side session and hand the browser its signed token."""
    settings = get_settings()
    token = await store.create(user_id)
    response.set_cookie(
        settings.session_cookie_name,
        sign_value(token),
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


async def destroy_session(request: Request, response: Response, store: SessionStore) -> None:
    """Log out. Safe to call without a session."""
    settings = get_settings()
    token = _session_token(request)
    if token:
        await store.delete(token)
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite=settings.session_cookie_samesite,
    )


def new_oauth_state() -> str:
    return secrets.token_urlsafe(32)


def validate_oauth_state(request: Request, submitted: str | None) -> bool:
    """Compare the callback ``state`` against the value stashed in the state cookie."""
    settings = get_settings()
    cookie = request.cookies.get(settings.oauth_state_cookie_name)
    if not cookie or not submitted:
        return False
    expected = unsign_value(cookie, settings.oauth_state_max_age, salt="oauth-state")
    if not expected:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8"))
