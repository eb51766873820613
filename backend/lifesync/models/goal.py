"""Goal model: a weekly time budget the user plans against."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
from lifesync.database import Base


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="work_startups")  # 'work_startups', 'learning', 'health_sports', 'hobbies'
    priority = Column(String(20), nullable=False, default="medium")  # 'critical', 'high', 'medium', 'low'
    status = Column(String(20), nullable=False, default="not_started")
    color = Column(String(20), nullable=True)
    icon_url = Column(Text, nullable=True)
    url = Column(Text, nullable=True)

    # Hours per week
    time_allocated = Column(Numeric(10, 2), nullable=False, default=0)

    # Payment
    currency = Column(String(10), nullable=True)
    payment_type = Column(String(20), nullable=True)  # 'hourly', 'fixed'
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    fixed_rate = Column(Numeric(10, 2), nullable=True)
    fixed_rate_period = Column(String(20), nullable=True)  # 'week', 'month'

    is_ongoing = Column(Boolean, default=False, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    target_end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Goal(id={self.id}, name='{self.name}', allocated={self.time_allocated})>"
