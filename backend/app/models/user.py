"""User model for federated (Google) sign-in."""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    external_id = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    # Offline-access refresh token; only issued on first consent
    refresh_token = Column(Text)
    last_login_at = Column(DateTime(timezone=True))

    # Relationships
    applications = relationship("Application", back_populates="user", cascade="all, delete-orphan")
