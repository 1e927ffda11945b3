"""Job application model — one tracked application per row, owned by a user."""

import enum

from sqlalchemy import Column, String, Text, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class ApplicationStatus(str, enum.Enum):
    """User-editable label; any status may move to any other."""

    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFERED = "Offered"
    REJECTED = "Rejected"


DEFAULT_STATUS = ApplicationStatus.APPLIED.value


class Application(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "applications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    job_title = Column(String(255), nullable=False)
    job_url = Column(Text)
    status = Column(String(20), nullable=False, default=DEFAULT_STATUS, server_default=DEFAULT_STATUS)
    notes = Column(Text)

    # Relationships
    user = relationship("User", back_populates="applications")

    __table_args__ = (
        Index("idx_applications_user_created", "user_id", "created_at"),
    )
