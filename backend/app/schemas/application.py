"""Pydantic schemas for Application model."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ApplicationWrite(BaseModel):
    """Request body for create and update.

    Everything is optional at the schema level so that missing required
    fields are reported by the service as a 400 naming those fields.
    """

    company_name: str | None = None
    job_title: str | None = None
    job_url: str | None = None
    status: str | None = None
    notes: str | None = None


class ApplicationRead(BaseModel):
    """Full application output."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    company_name: str
    job_title: str
    job_url: str | None = None
    status: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
