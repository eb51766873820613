"""
Weekly snapshots of goals and recurring events.

A snapshot freezes a week's goal/event configuration and derived hour
statistics. Its content hash only detects staleness: when current goals or
events hash differently, the snapshot is out of date and (for past weeks,
unless frozen) can be recalculated.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from lifesync.config import settings
from lifesync.exceptions import FrozenSnapshotError, NotFoundError, SnapshotExistsError
from lifesync.models.goal import Goal
from lifesync.models.recurring_event import RecurringEvent
from lifesync.models.snapshot import GoalSnapshot, RecurringEventSnapshot, WeeklySnapshot
from lifesync.models.user import User
from lifesync.schemas.snapshot import CheckChangesResponse
from lifesync.services.recurrence import expand_events
from lifesync.utils.time_utils import as_utc, utcnow, week_boundaries, week_datetime_range

log = logging.getLogger(__name__)


class GoalProgress(BaseModel):
    total_allocated: float
    completed: float
    scheduled: float
    unscheduled: float


class WeeklyStats(BaseModel):
    total_available_hours: float
    total_allocated_hours: float
    total_completed_hours: float
    total_scheduled_hours: float
    free_time_hours: float


def _hours(value) -> float:
    return float(value) if value is not None else 0.0


def generate_snapshot_hash(goals: Sequence[Goal], events: Sequence[RecurringEvent]) -> str:
    """SHA-256 over the fields that affect a week's statistics, independent of input order."""
    goals_data = [
        {
            "id": str(g.id),
            "timeAllocated": _hours(g.time_allocated),
            "status": g.status,
            "category": g.category,
        }
        for g in sorted(goals, key=lambda g: str(g.id))
    ]
    events_data = [
        {
            "id": str(e.id),
            "goalId": str(e.goal_id) if e.goal_id else None,
            "startTime": e.start_time,
            "duration": e.duration,
            "frequency": e.frequency,
            "daysOfWeek": list(e.days_of_week) if e.days_of_week is not None else None,
            "isActive": bool(e.is_active),
        }
        for e in sorted(events, key=lambda e: str(e.id))
    ]
    payload = json.dumps({"goals": goals_data, "events": events_data}, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def calculate_goal_progress(
    goal: Goal,
    events: Sequence[RecurringEvent],
    week_start: date,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> GoalProgress:
    """Hours of the goal's events in the week, split into completed (ended before now) and scheduled."""
    tz_name = tz_name or settings.timezone
    now = as_utc(now) if now else utcnow()
    range_start, range_end = week_datetime_range(week_start, tz_name)

    completed = scheduled = 0.0
    for occurrence in expand_events(events, range_start.date(), range_end.date(), tz_name, goal_id=goal.id):
        if occurrence.end < now:
            completed += occurrence.hours
        else:
            scheduled += occurrence.hours

    allocated = _hours(goal.time_allocated)
    return GoalProgress(
        total_allocated=allocated,
        completed=round(completed, 1),
        scheduled=round(scheduled, 1),
        unscheduled=round(max(0.0, allocated - (completed + scheduled)), 1),
    )


def calculate_weekly_stats(
    goals: Sequence[Goal],
    events: Sequence[RecurringEvent],
    week_start: date,
    total_available_hours: float,
    now: Optional[datetime] = None,
) -> WeeklyStats:
    """Aggregates goal progress. Free time is available minus allocated and goes negative when overcommitted."""
    allocated = completed = scheduled = 0.0
    for goal in goals:
        progress = calculate_goal_progress(goal, events, week_start, now)
        allocated += progress.total_allocated
        completed += progress.completed
        scheduled += progress.scheduled

    return WeeklyStats(
        total_available_hours=round(total_available_hours, 2),
        total_allocated_hours=round(allocated, 2),
        total_completed_hours=round(completed, 2),
        total_scheduled_hours=round(scheduled, 2),
        free_time_hours=round(total_available_hours - allocated, 2),
    )


def available_hours_for(user: User) -> float:
    if user.weekly_available_hours is not None:
        return float(user.weekly_available_hours)
    return settings.default_weekly_available_hours


def _load_configuration(db: Session, user_id) -> Tuple[List[Goal], List[RecurringEvent]]:
    goals = db.query(Goal).filter(Goal.user_id == user_id).all()
    events = db.query(RecurringEvent).filter(RecurringEvent.user_id == user_id).all()
    return goals, events


def _find_snapshot(db: Session, user_id, week_start: date) -> Optional[WeeklySnapshot]:
    return db.query(WeeklySnapshot).filter(
        WeeklySnapshot.user_id == user_id,
        WeeklySnapshot.week_start_date == week_start,
    ).first()


def _apply_stats(snapshot: WeeklySnapshot, stats: WeeklyStats, snapshot_hash: str) -> None:
    snapshot.total_available_hours = stats.total_available_hours
    snapshot.total_allocated_hours = stats.total_allocated_hours
    snapshot.total_completed_hours = stats.total_completed_hours
    snapshot.total_scheduled_hours = stats.total_scheduled_hours
    snapshot.free_time_hours = stats.free_time_hours
    snapshot.snapshot_hash = snapshot_hash


def _build_children(
    db: Session,
    snapshot: WeeklySnapshot,
    goals: Sequence[Goal],
    events: Sequence[RecurringEvent],
    week_start: date,
    now: Optional[datetime] = None,
) -> None:
    goal_snapshot_ids = {}
    for goal in goals:
        progress = calculate_goal_progress(goal, events, week_start, now)
        goal_snapshot = GoalSnapshot(
            weekly_snapshot_id=snapshot.id,
            goal_id=goal.id,
            goal_name=goal.name,
            goal_description=goal.description,
            goal_category=goal.category,
            goal_priority=goal.priority,
            goal_status=goal.status,
            goal_color=goal.color,
            goal_icon_url=goal.icon_url,
            goal_url=goal.url,
            time_allocated=progress.total_allocated,
            time_completed=progress.completed,
            time_scheduled=progress.scheduled,
            time_unscheduled=progress.unscheduled,
            payment_type=goal.payment_type,
            hourly_rate=goal.hourly_rate,
            fixed_rate=goal.fixed_rate,
            currency=goal.currency,
        )
        db.add(goal_snapshot)
        db.flush()
        goal_snapshot_ids[goal.id] = goal_snapshot.id

    for event in events:
        db.add(RecurringEventSnapshot(
            weekly_snapshot_id=snapshot.id,
            goal_snapshot_id=goal_snapshot_ids.get(event.goal_id) if event.goal_id else None,
            recurring_event_id=event.id,
            title=event.title,
            description=event.description,
            start_time=event.start_time,
            duration=event.duration,
            frequency=event.frequency,
            interval=event.interval or 1,
            days_of_week=list(event.days_of_week) if event.days_of_week is not None else None,
            color=event.color,
        ))


def create_snapshot(
    db: Session, user: User, week_offset: int = 0, is_frozen: bool = False, now: Optional[datetime] = None
) -> WeeklySnapshot:
    week_start, week_end = week_boundaries(week_offset, settings.timezone)
    existing = _find_snapshot(db, user.id, week_start)
    if existing is not None:
        raise SnapshotExistsError("Snapshot already exists for this week", snapshot_id=existing.id)

    goals, events = _load_configuration(db, user.id)
    stats = calculate_weekly_stats(goals, events, week_start, available_hours_for(user), now)

    snapshot = WeeklySnapshot(
        user_id=user.id,
        week_start_date=week_start,
        week_end_date=week_end,
        is_frozen=is_frozen,
    )
    _apply_stats(snapshot, stats, generate_snapshot_hash(goals, events))
    db.add(snapshot)
    db.flush()
    _build_children(db, snapshot, goals, events, week_start, now)
    db.commit()
    db.refresh(snapshot)
    log.info(f"Created snapshot {snapshot.id} for user {user.id}, week {week_start} (frozen={is_frozen})")
    return snapshot


def get_snapshot(db: Session, user: User, week_offset: int = 0) -> Optional[WeeklySnapshot]:
    week_start, _ = week_boundaries(week_offset, settings.timezone)
    return _find_snapshot(db, user.id, week_start)


def get_snapshot_children(
    db: Session, snapshot: WeeklySnapshot
) -> Tuple[List[GoalSnapshot], List[RecurringEventSnapshot]]:
    goal_snapshots = db.query(GoalSnapshot).filter(
        GoalSnapshot.weekly_snapshot_id == snapshot.id
    ).order_by(GoalSnapshot.goal_name).all()
    event_snapshots = db.query(RecurringEventSnapshot).filter(
        RecurringEventSnapshot.weekly_snapshot_id == snapshot.id
    ).all()
    return goal_snapshots, event_snapshots


def check_changes(db: Session, user: User, week_offset: int = 0) -> CheckChangesResponse:
    snapshot = get_snapshot(db, user, week_offset)
    if snapshot is None:
        return CheckChangesResponse(has_snapshot=False, has_changes=False, can_recalculate=False)

    goals, events = _load_configuration(db, user.id)
    current_hash = generate_snapshot_hash(goals, events)
    return CheckChangesResponse(
        has_snapshot=True,
        has_changes=snapshot.snapshot_hash != current_hash,
        last_updated=snapshot.updated_at,
        # The current and future weeks are live data
        can_recalculate=week_offset < 0,
    )


def recalculate(db: Session, user: User, week_offset: int, now: Optional[datetime] = None) -> WeeklySnapshot:
    """Full replace of a non-frozen snapshot's stats and children from current goals/events."""
    snapshot = get_snapshot(db, user, week_offset)
    if snapshot is None:
        raise NotFoundError("Snapshot not found")
    if snapshot.is_frozen:
        raise FrozenSnapshotError("Cannot recalculate manually frozen snapshot")

    goals, events = _load_configuration(db, user.id)
    stats = calculate_weekly_stats(goals, events, snapshot.week_start_date, available_hours_for(user), now)
    _apply_stats(snapshot, stats, generate_snapshot_hash(goals, events))

    db.query(RecurringEventSnapshot).filter(
        RecurringEventSnapshot.weekly_snapshot_id == snapshot.id
    ).delete(synchronize_session=False)
    db.query(GoalSnapshot).filter(
        GoalSnapshot.weekly_snapshot_id == snapshot.id
    ).delete(synchronize_session=False)
    db.expire(snapshot, ["goal_snapshots", "recurring_event_snapshots"])

    _build_children(db, snapshot, goals, events, snapshot.week_start_date, now)
    db.commit()
    db.refresh(snapshot)
    log.info(f"Recalculated snapshot {snapshot.id} for week {snapshot.week_start_date}")
    return snapshot


class SnapshotBatchResult(BaseModel):
    week_start: date
    total_users: int = 0
    created: int = 0
    skipped: int = 0
    errors: List[str] = []


def create_weekly_snapshots_for_all_users(db: Session, week_offset: int = -1) -> SnapshotBatchResult:
    """Snapshot the given (by default previous) week for every user that has goals and no snapshot yet."""
    week_start, _ = week_boundaries(week_offset, settings.timezone)
    users = db.query(User).filter(User.is_active == True).all()
    result = SnapshotBatchResult(week_start=week_start, total_users=len(users))

    for user in users:
        if _find_snapshot(db, user.id, week_start) is not None:
            result.skipped += 1
            continue
        if db.query(Goal.id).filter(Goal.user_id == user.id).first() is None:
            result.skipped += 1
            continue
        try:
            create_snapshot(db, user, week_offset)
            result.created += 1
        except Exception as e:
            db.rollback()
            log.error(f"Weekly snapshot failed for user {user.id}: {e}")
            result.errors.append(f"{user.email}: {e}")

    log.info(
        f"Weekly snapshots for {week_start}: {result.created} created, "
        f"{result.skipped} skipped, {len(result.errors)} errors"
    )
    return result
