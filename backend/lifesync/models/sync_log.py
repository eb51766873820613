"""Sync log model: append-only audit record of one sync execution."""

import uuid

from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lifesync.database import Base


class SyncLog(Base):
    """One row per sync invocation; status moves started -> completed | failed once."""

    __tablename__ = "clockify_sync_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    connection_id = Column(Uuid, ForeignKey("clockify_connections.id", ondelete="CASCADE"), nullable=False, index=True)

    # Execution details
    sync_type = Column(String(20), nullable=False)  # 'full', 'incremental'
    direction = Column(String(20), nullable=False, default="import")
    status = Column(String(20), nullable=False, index=True)  # 'started', 'completed', 'failed'
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Statistics
    entries_imported = Column(Integer, default=0, nullable=False)
    entries_updated = Column(Integer, default=0, nullable=False)
    entries_skipped = Column(Integer, default=0, nullable=False)

    # Error information
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    connection = relationship("ClockifyConnection", back_populates="sync_logs")

    def __repr__(self):
        return f"<SyncLog(id={self.id}, type='{self.sync_type}', status='{self.status}', imported={self.entries_imported})>"
