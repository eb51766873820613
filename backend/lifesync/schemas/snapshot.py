import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from lifesync.schemas.base import CamelModel


class SnapshotCreate(CamelModel):
    week_offset: int = 0
    is_frozen: bool = False


class RecalculateRequest(CamelModel):
    week_offset: Optional[int] = None


class WeeklySnapshotInfo(CamelModel):
    id: uuid.UUID
    week_start_date: date
    week_end_date: date
    total_available_hours: Decimal
    total_allocated_hours: Decimal
    total_completed_hours: Decimal
    total_scheduled_hours: Decimal
    free_time_hours: Decimal
    is_frozen: bool
    snapshot_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GoalSnapshotInfo(CamelModel):
    id: uuid.UUID
    goal_id: uuid.UUID
    goal_name: str
    goal_description: Optional[str] = None
    goal_category: Optional[str] = None
    goal_priority: Optional[str] = None
    goal_status: Optional[str] = None
    goal_color: Optional[str] = None
    goal_icon_url: Optional[str] = None
    goal_url: Optional[str] = None
    time_allocated: Decimal
    time_completed: Decimal
    time_scheduled: Decimal
    time_unscheduled: Decimal
    payment_type: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    fixed_rate: Optional[Decimal] = None
    currency: Optional[str] = None


class RecurringEventSnapshotInfo(CamelModel):
    id: uuid.UUID
    recurring_event_id: uuid.UUID
    goal_snapshot_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    start_time: str
    duration: int
    frequency: str
    interval: int
    days_of_week: Optional[List[int]] = None
    color: Optional[str] = None


class SnapshotResponse(CamelModel):
    snapshot: Optional[WeeklySnapshotInfo] = None
    goal_snapshots: List[GoalSnapshotInfo] = []
    recurring_event_snapshots: List[RecurringEventSnapshotInfo] = []


class CheckChangesResponse(CamelModel):
    has_snapshot: bool
    has_changes: bool
    last_updated: Optional[datetime] = None
    can_recalculate: bool


class WeeklySnapshotsCronResponse(CamelModel):
    success: bool = True
    week_start: date
    total_users: int
    created: int
    skipped: int
    errors: List[str] = []
