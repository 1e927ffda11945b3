"""Pydantic schemas for User model."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    """Public view of the logged-in user. The refresh token is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str
    email: str
    created_at: datetime
    last_login_at: datetime | None = None
