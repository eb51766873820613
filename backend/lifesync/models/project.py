"""Cached Clockify projects."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lifesync.database import Base


class ClockifyProject(Base):
    """Local copy of a Clockify project, refreshed on every sync and never auto-deleted."""

    __tablename__ = "clockify_projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    connection_id = Column(Uuid, ForeignKey("clockify_connections.id", ondelete="CASCADE"), nullable=False, index=True)

    clockify_project_id = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=True)
    color = Column(String(20), nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)

    fetched_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    connection = relationship("ClockifyConnection", back_populates="projects")

    __table_args__ = (
        UniqueConstraint("connection_id", "clockify_project_id", name="uq_clockify_project_connection"),
    )

    def __repr__(self):
        return f"<ClockifyProject(id={self.id}, clockify_id='{self.clockify_project_id}', name='{self.name}')>"
