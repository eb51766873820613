"""Recurring calendar event, optionally linked to a goal."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
from lifesync.database import Base
from lifesync.models.types import IntArray


class RecurringEvent(Base):
    __tablename__ = "recurring_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(Uuid, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    duration = Column(Integer, nullable=False)  # minutes

    # Recurrence rule
    frequency = Column(String(20), nullable=False)  # 'daily', 'weekly', 'monthly'
    interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(IntArray, nullable=True)  # 0=Sunday .. 6=Saturday
    end_date = Column(DateTime(timezone=True), nullable=True)
    recurrence_count = Column(Integer, nullable=True)

    color = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RecurringEvent(id={self.id}, title='{self.title}', frequency='{self.frequency}')>"
