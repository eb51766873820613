"""Clockify connection model: one user's link to one external workspace."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lifesync.database import Base


class ClockifyConnection(Base):
    """Stored Clockify credentials and sync state for a user workspace."""

    __tablename__ = "clockify_connections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Credentials
    api_key_encrypted = Column(Text, nullable=False)  # AES-GCM, see utils.encrypt
    workspace_id = Column(String(100), nullable=False, index=True)
    clockify_user_id = Column(String(100), nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    sync_status = Column(String(20), default="pending", nullable=False)  # 'pending', 'syncing', 'success', 'error'
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_successful_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_error = Column(Text, nullable=True)
    sync_started_at = Column(DateTime(timezone=True), nullable=True)  # Set while a run holds the connection

    # Sync settings
    auto_sync_enabled = Column(Boolean, default=True, nullable=False)
    sync_direction = Column(String(20), default="import_only", nullable=False)
    sync_frequency_minutes = Column(Integer, default=30, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    projects = relationship("ClockifyProject", back_populates="connection")
    sync_logs = relationship("SyncLog", back_populates="connection")

    __table_args__ = (
        UniqueConstraint("user_id", "workspace_id", name="uq_clockify_connection_user_workspace"),
    )

    def __repr__(self):
        return f"<ClockifyConnection(id={self.id}, workspace='{self.workspace_id}', status='{self.sync_status}')>"
