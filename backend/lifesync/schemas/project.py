import uuid
from datetime import datetime
from typing import List, Optional

from lifesync.schemas.base import CamelModel


class ProjectInfo(CamelModel):
    id: uuid.UUID
    clockify_project_id: str
    name: str
    client_name: Optional[str] = None
    color: Optional[str] = None
    is_archived: bool
    fetched_at: Optional[datetime] = None


class ProjectListResponse(CamelModel):
    projects: List[ProjectInfo]


class GoalBrief(CamelModel):
    id: uuid.UUID
    name: str
    category: Optional[str] = None
    icon_url: Optional[str] = None


class MappingCreate(CamelModel):
    clockify_project_id: uuid.UUID  # Cache row id
    goal_id: uuid.UUID
    auto_categorize: bool = True


class MappingInfo(CamelModel):
    id: uuid.UUID
    is_active: bool
    auto_categorize: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    project: Optional[ProjectInfo] = None
    goal: Optional[GoalBrief] = None


class MappingListResponse(CamelModel):
    mappings: List[MappingInfo]


class MappingCreateResponse(CamelModel):
    success: bool = True
    mapping: MappingInfo
    message: str = "Mapping created successfully"
