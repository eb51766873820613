"""User model mirrored from the session provider."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Uuid
from sqlalchemy.sql import func
from lifesync.database import Base


class User(Base):
    """Application user; authentication itself is handled by the session provider."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    weekly_available_hours = Column(Numeric(10, 2), nullable=True)  # Falls back to settings default
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
