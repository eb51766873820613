import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from lifesync.schemas.base import CamelModel


class TimeEntryCreate(CamelModel):
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None  # None starts a running entry
    goal_id: Optional[uuid.UUID] = None
    clockify_project_id: Optional[uuid.UUID] = None  # Cache row id
    is_billable: bool = False
    source: Literal["manual", "calendar_event"] = "manual"


class TimeEntryUpdate(CamelModel):
    """Partial update; only the fields present in the request are written."""
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    goal_id: Optional[uuid.UUID] = None
    clockify_project_id: Optional[uuid.UUID] = None
    is_billable: Optional[bool] = None


class TimeEntryGoal(CamelModel):
    id: uuid.UUID
    name: str
    category: Optional[str] = None
    icon_url: Optional[str] = None
    color: Optional[str] = None


class TimeEntryProject(CamelModel):
    id: uuid.UUID
    name: str
    color: Optional[str] = None


class TimeEntryInfo(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    goal_id: Optional[uuid.UUID] = None
    clockify_entry_id: Optional[str] = None
    clockify_project_id: Optional[uuid.UUID] = None
    is_billable: bool
    source: str
    sync_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    goal: Optional[TimeEntryGoal] = None
    clockify_project: Optional[TimeEntryProject] = None


class Pagination(CamelModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int


class TimeEntryListResponse(CamelModel):
    entries: List[TimeEntryInfo]
    pagination: Pagination


class TimeEntryResponse(CamelModel):
    success: bool = True
    entry: TimeEntryInfo
    message: Optional[str] = None


class GoalTime(CamelModel):
    goal_id: uuid.UUID
    goal_name: Optional[str] = None
    goal_category: Optional[str] = None
    goal_icon_url: Optional[str] = None
    total_seconds: int
    total_hours: float
    entry_count: int


class DayTime(CamelModel):
    date: date
    total_seconds: int
    total_hours: float


class WeekTime(CamelModel):
    week_start: date
    total_seconds: int
    total_hours: float


class SourceTime(CamelModel):
    seconds: int = 0
    hours: float = 0.0


class SourceBreakdown(CamelModel):
    manual: SourceTime
    clockify: SourceTime
    calendar_event: SourceTime


class StatsSummary(CamelModel):
    total_seconds: int
    total_hours: float
    total_entries: int
    start_date: datetime
    end_date: datetime
    period_days: int


class TimeEntryStats(CamelModel):
    summary: StatsSummary
    by_goal: List[GoalTime]
    by_day: Optional[List[DayTime]] = None
    by_week: Optional[List[WeekTime]] = None
    by_source: SourceBreakdown


class TimeEntryStatsResponse(CamelModel):
    stats: TimeEntryStats
