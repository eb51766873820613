import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from lifesync.schemas.base import CamelModel


class StartTimerRequest(CamelModel):
    goal_id: uuid.UUID
    description: Optional[str] = None


class TimerEntry(CamelModel):
    id: str
    description: Optional[str] = None
    project_id: Optional[str] = None
    start: datetime
    end: Optional[datetime] = None


class StartTimerResponse(CamelModel):
    success: bool = True
    time_entry: TimerEntry
    project_created: bool = False
    message: str = "Timer started"


class StopTimerRequest(CamelModel):
    time_entry_id: str = Field(..., min_length=1)


class StopTimerResponse(CamelModel):
    success: bool = True
    time_entry: TimerEntry
    message: str = "Timer stopped"


class DeleteTimerRequest(CamelModel):
    time_entry_id: str = Field(..., min_length=1)


class GoalInfo(CamelModel):
    id: uuid.UUID
    name: str
    color: Optional[str] = None


class RunningTimer(CamelModel):
    id: str
    description: Optional[str] = None
    start_time: datetime
    duration_seconds: int
    project_id: Optional[str] = None
    goal: Optional[GoalInfo] = None


class CurrentTimerResponse(CamelModel):
    connected: bool
    timer: Optional[RunningTimer] = None


class WeeklyEntry(BaseModel):
    """Clockify entry enriched with its mapped goal. Keys stay snake_case like local time entries."""
    id: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int = 0
    is_billable: bool = False
    goal_id: Optional[uuid.UUID] = None
    goal_name: Optional[str] = None
    goal_color: Optional[str] = None
    clockify_project_id: Optional[str] = None
    clockify_project_name: Optional[str] = None
    tags: List[str] = []


class WeeklyEntriesResponse(CamelModel):
    success: bool = True
    week_start: datetime
    week_end: datetime
    entries: List[WeeklyEntry]
    total_entries: int
