"""Authentication web routes — external (Google) login and its callback."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.base import get_db
from app.services.auth_service import upsert_user
from app.services.google_oauth import IdentityProvider, IdentityProviderError, get_identity_provider
from app.services.session_store import SessionStore
from app.dependencies.auth import (
    get_session_store,
    new_oauth_state,
    sign_value,
    start_session,
    validate_oauth_state,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _clear_state_cookie(response: RedirectResponse) -> None:
    response.delete_cookie(get_settings().oauth_state_cookie_name, path="/auth")


@router.get("/external-login")
async def external_login(provider: IdentityProvider = Depends(get_identity_provider)):
    """Send the browser to the provider's consent screen."""
    settings = get_settings()
    state = new_oauth_state()
    response = RedirectResponse(provider.authorization_url(state), status_code=303)
    response.set_cookie(
        settings.oauth_state_cookie_name,
        sign_value(state, salt="oauth-state"),
        max_age=settings.oauth_state_max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/auth",
    )
    return response


@router.get("/external-login/callback")
async def external_login_callback(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
    store: SessionStore = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
):
    """Finish federation: upsert the local user and bind a session to it.

    Any provider-side failure sends the browser back to the client with no
    session and no change to the users table.
    """
    settings = get_settings()
    response = RedirectResponse(settings.client_url, status_code=303)
    _clear_state_cookie(response)

    params = dict(request.query_params)
    if not validate_oauth_state(request, params.get("state")):
        logger.warning("Rejected login callback with missing or mismatched state")
        return response

    try:
        profile = await provider.authenticate(params)
    except IdentityProviderError as e:
        logger.warning("External login failed: %s", e)
        return response

    user = await upsert_user(db, profile)
    await start_session(response, store, user.id)
    logger.info("User %s logged in", user.id)
    return response
