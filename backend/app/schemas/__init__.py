"""Pydantic schemas package."""

from app.schemas.application import (
    ApplicationWrite,
    ApplicationRead,
)
from app.schemas.user import UserRead

__all__ = [
    # Application
    "ApplicationWrite",
    "ApplicationRead",
    # User
    "UserRead",
]
