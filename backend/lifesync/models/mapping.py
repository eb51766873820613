"""Project to goal mapping model."""

import uuid

from sqlalchemy import Column, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lifesync.database import Base


class ProjectGoalMapping(Base):
    """Mapping between a cached Clockify project and a local goal."""

    __tablename__ = "clockify_project_goal_mappings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(Uuid, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    # Our cache row id, not the Clockify project id
    clockify_project_id = Column(Uuid, ForeignKey("clockify_projects.id", ondelete="CASCADE"), nullable=False, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    auto_categorize = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    project = relationship("ClockifyProject")
    goal = relationship("Goal")

    __table_args__ = (
        UniqueConstraint("clockify_project_id", "goal_id", name="uq_project_goal_mapping"),
    )

    def __repr__(self):
        return f"<ProjectGoalMapping(id={self.id}, goal={self.goal_id}, project={self.clockify_project_id})>"
