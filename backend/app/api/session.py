"""Current-user and logout endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from app.config import get_settings
from app.dependencies.auth import destroy_session, get_session_store, require_user_api
from app.models.user import User
from app.schemas.user import UserRead
from app.services.session_store import SessionStore

router = APIRouter(tags=["session"])


@router.get("/get-user", response_model=UserRead)
async def get_user(user: User = Depends(require_user_api)):
    """Lets the client check whether the browser is logged in."""
    return user


@router.get("/logout")
async def logout(request: Request, store: SessionStore = Depends(get_session_store)):
    response = RedirectResponse(get_settings().client_url, status_code=303)
    await destroy_session(request, response, store)
    return response
