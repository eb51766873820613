"""Weekly snapshot models: point-in-time copies of goals and recurring events."""

import uuid

from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Integer, Numeric, Text, ForeignKey, UniqueConstraint, Uuid
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lifesync.database import Base
from lifesync.models.types import IntArray


class WeeklySnapshot(Base):
    """Aggregate statistics of one user's week, plus a content hash for staleness checks."""

    __tablename__ = "weekly_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)

    total_available_hours = Column(Numeric(10, 2), nullable=False, default=0)
    total_allocated_hours = Column(Numeric(10, 2), nullable=False, default=0)
    total_completed_hours = Column(Numeric(10, 2), nullable=False, default=0)
    total_scheduled_hours = Column(Numeric(10, 2), nullable=False, default=0)
    free_time_hours = Column(Numeric(10, 2), nullable=False, default=0)  # Negative when overcommitted

    is_frozen = Column(Boolean, default=False, nullable=False)
    snapshot_hash = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    goal_snapshots = relationship(
        "GoalSnapshot", back_populates="weekly_snapshot", cascade="all, delete-orphan", passive_deletes=True
    )
    recurring_event_snapshots = relationship(
        "RecurringEventSnapshot", back_populates="weekly_snapshot", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "week_start_date", name="uq_weekly_snapshot_user_week"),
    )

    def __repr__(self):
        return f"<WeeklySnapshot(id={self.id}, week={self.week_start_date}, frozen={self.is_frozen})>"


class GoalSnapshot(Base):
    """Copy of a goal as it was during the snapshot week."""

    __tablename__ = "weekly_goal_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    weekly_snapshot_id = Column(Uuid, ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(Uuid, nullable=False)  # Plain id, the goal may be deleted later

    goal_name = Column(String(255), nullable=False)
    goal_description = Column(Text, nullable=True)
    goal_category = Column(String(50), nullable=True)
    goal_priority = Column(String(20), nullable=True)
    goal_status = Column(String(20), nullable=True)
    goal_color = Column(String(20), nullable=True)
    goal_icon_url = Column(Text, nullable=True)
    goal_url = Column(Text, nullable=True)

    time_allocated = Column(Numeric(10, 2), nullable=False, default=0)
    time_completed = Column(Numeric(10, 2), nullable=False, default=0)
    time_scheduled = Column(Numeric(10, 2), nullable=False, default=0)
    time_unscheduled = Column(Numeric(10, 2), nullable=False, default=0)

    payment_type = Column(String(20), nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    fixed_rate = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    weekly_snapshot = relationship("WeeklySnapshot", back_populates="goal_snapshots")

    def __repr__(self):
        return f"<GoalSnapshot(id={self.id}, goal='{self.goal_name}')>"


class RecurringEventSnapshot(Base):
    """Copy of a recurring event as it was during the snapshot week."""

    __tablename__ = "weekly_recurring_event_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    weekly_snapshot_id = Column(Uuid, ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_snapshot_id = Column(Uuid, ForeignKey("weekly_goal_snapshots.id", ondelete="CASCADE"), nullable=True)
    recurring_event_id = Column(Uuid, nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False)
    frequency = Column(String(20), nullable=False)
    interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(IntArray, nullable=True)
    color = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    weekly_snapshot = relationship("WeeklySnapshot", back_populates="recurring_event_snapshots")

    def __repr__(self):
        return f"<RecurringEventSnapshot(id={self.id}, title='{self.title}')>"
