"""Time entry model: the canonical record of a tracked interval."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, UniqueConstraint, Index, Uuid, event
from sqlalchemy.sql import func
from lifesync.database import Base
from lifesync.utils.time_utils import as_utc


class TimeEntry(Base):
    """Time entry from Clockify, a calendar event or manual input."""

    __tablename__ = "time_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)  # NULL means the timer is running
    duration_seconds = Column(Integer, nullable=True)

    goal_id = Column(Uuid, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True)

    # Clockify sync metadata
    clockify_entry_id = Column(String(100), nullable=True)
    clockify_project_id = Column(Uuid, ForeignKey("clockify_projects.id", ondelete="SET NULL"), nullable=True)
    is_billable = Column(Boolean, default=False, nullable=False)

    source = Column(String(20), default="manual", nullable=False, index=True)  # 'manual', 'clockify', 'calendar_event'
    sync_status = Column(String(20), default="synced", nullable=False)  # 'synced', 'pending_push'
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    # sha256 of description|start|end|projectId as last imported
    content_hash = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        # Reconciliation key; NULL external ids never collide
        UniqueConstraint("user_id", "clockify_entry_id", name="uq_time_entries_user_clockify_entry"),
        Index("idx_time_entries_user_time", "user_id", "start_time", "end_time"),
        Index("idx_time_entries_content_hash", "clockify_entry_id", "content_hash"),
    )

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, clockify_id='{self.clockify_entry_id}', start={self.start_time})>"


@event.listens_for(TimeEntry, "before_insert")
@event.listens_for(TimeEntry, "before_update")
def _calculate_duration(mapper, connection, target):
    if target.start_time is not None and target.end_time is not None:
        delta = as_utc(target.end_time) - as_utc(target.start_time)
        target.duration_seconds = max(0, int(delta.total_seconds()))
    else:
        target.duration_seconds = None
