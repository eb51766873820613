"""
Local time entries: listing, manual creation, edits and aggregate statistics.

Every lookup is scoped to the caller; another user's entry, goal or project
is reported as not found (projects owned by someone else as access denied).
"""

import logging
import math
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from lifesync.config import settings
from lifesync.exceptions import AccessDeniedError, InvalidTimeRangeError, NotFoundError
from lifesync.models.connection import ClockifyConnection
from lifesync.models.goal import Goal
from lifesync.models.project import ClockifyProject
from lifesync.models.time_entry import TimeEntry
from lifesync.models.user import User
from lifesync.schemas.time_entry import (
    DayTime,
    GoalTime,
    Pagination,
    SourceBreakdown,
    SourceTime,
    StatsSummary,
    TimeEntryCreate,
    TimeEntryGoal,
    TimeEntryInfo,
    TimeEntryProject,
    TimeEntryStats,
    TimeEntryUpdate,
    WeekTime,
)
from lifesync.utils.time_utils import as_utc, monday_of

log = logging.getLogger(__name__)


def _hours(seconds: int) -> float:
    return round(seconds / 3600, 2)


def _owned_goal(db: Session, user: User, goal_id: uuid.UUID) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if goal is None:
        raise NotFoundError("Goal not found or access denied")
    return goal


def _owned_project(db: Session, user: User, project_id: uuid.UUID) -> ClockifyProject:
    row = db.query(ClockifyProject, ClockifyConnection.user_id).join(
        ClockifyConnection, ClockifyProject.connection_id == ClockifyConnection.id
    ).filter(ClockifyProject.id == project_id).first()
    if row is None:
        raise NotFoundError("Clockify project not found")
    project, owner_id = row
    if owner_id != user.id:
        raise AccessDeniedError("Access denied to clockify project")
    return project


def _check_range(start: datetime, end: Optional[datetime]) -> None:
    if end is not None and as_utc(end) <= as_utc(start):
        raise InvalidTimeRangeError("endTime must be after startTime")


def describe_entries(db: Session, entries: Iterable[TimeEntry]) -> List[TimeEntryInfo]:
    """Entries with their goal and cached project attached."""
    entries = list(entries)
    goal_ids = {e.goal_id for e in entries if e.goal_id}
    project_ids = {e.clockify_project_id for e in entries if e.clockify_project_id}
    goals = {g.id: g for g in db.query(Goal).filter(Goal.id.in_(goal_ids)).all()} if goal_ids else {}
    projects = (
        {p.id: p for p in db.query(ClockifyProject).filter(ClockifyProject.id.in_(project_ids)).all()}
        if project_ids else {}
    )

    result = []
    for entry in entries:
        info = TimeEntryInfo.model_validate(entry)
        goal = goals.get(entry.goal_id)
        if goal is not None:
            info.goal = TimeEntryGoal.model_validate(goal)
        project = projects.get(entry.clockify_project_id)
        if project is not None:
            info.clockify_project = TimeEntryProject.model_validate(project)
        result.append(info)
    return result


def list_time_entries(
    db: Session,
    user: User,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    goal_id: Optional[uuid.UUID] = None,
    source: Optional[str] = None,
    page: int = 0,
    page_size: int = 50,
) -> Tuple[List[TimeEntryInfo], Pagination]:
    query = db.query(TimeEntry).filter(TimeEntry.user_id == user.id)
    if start_date is not None:
        query = query.filter(TimeEntry.start_time >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(TimeEntry.start_time <= as_utc(end_date))
    if goal_id is not None:
        query = query.filter(TimeEntry.goal_id == goal_id)
    if source:
        query = query.filter(TimeEntry.source == source)

    total = query.count()
    entries = query.order_by(TimeEntry.start_time.desc()).offset(page * page_size).limit(page_size).all()
    pagination = Pagination(
        page=page,
        page_size=page_size,
        total_count=total,
        total_pages=math.ceil(total / page_size),
    )
    return describe_entries(db, entries), pagination


def get_time_entry(db: Session, user: User, entry_id: uuid.UUID) -> TimeEntry:
    entry = db.query(TimeEntry).filter(TimeEntry.id == entry_id, TimeEntry.user_id == user.id).first()
    if entry is None:
        raise NotFoundError("Time entry not found")
    return entry


def create_time_entry(db: Session, user: User, data: TimeEntryCreate) -> TimeEntry:
    _check_range(data.start_time, data.end_time)
    if data.goal_id is not None:
        _owned_goal(db, user, data.goal_id)
    if data.clockify_project_id is not None:
        _owned_project(db, user, data.clockify_project_id)

    entry = TimeEntry(
        user_id=user.id,
        description=data.description or None,
        start_time=as_utc(data.start_time),
        end_time=as_utc(data.end_time),
        goal_id=data.goal_id,
        clockify_project_id=data.clockify_project_id,
        is_billable=data.is_billable,
        source=data.source,
        sync_status="synced",
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    log.info(f"Created {entry.source} time entry {entry.id} for user {user.id}")
    return entry


def update_time_entry(db: Session, user: User, entry_id: uuid.UUID, data: TimeEntryUpdate) -> TimeEntry:
    """
    Applies the fields present in ``data``. Edits to an imported Clockify
    entry mark it ``pending_push``; the next import still overwrites it.
    """
    entry = get_time_entry(db, user, entry_id)
    changes = data.model_dump(exclude_unset=True)

    start = changes.get("start_time", entry.start_time)
    end = changes.get("end_time", entry.end_time)
    if start is None:
        raise InvalidTimeRangeError("startTime cannot be cleared")
    _check_range(start, end)

    if changes.get("goal_id") and changes["goal_id"] != entry.goal_id:
        _owned_goal(db, user, changes["goal_id"])
    if changes.get("clockify_project_id") and changes["clockify_project_id"] != entry.clockify_project_id:
        _owned_project(db, user, changes["clockify_project_id"])

    if "description" in changes:
        entry.description = changes["description"] or None
    if "start_time" in changes:
        entry.start_time = as_utc(changes["start_time"])
    if "end_time" in changes:
        entry.end_time = as_utc(changes["end_time"])
    if "goal_id" in changes:
        entry.goal_id = changes["goal_id"]
    if "clockify_project_id" in changes:
        entry.clockify_project_id = changes["clockify_project_id"]
    if changes.get("is_billable") is not None:
        entry.is_billable = changes["is_billable"]

    if entry.source == "clockify" and entry.clockify_entry_id:
        entry.sync_status = "pending_push"

    db.commit()
    db.refresh(entry)
    log.debug(f"Updated time entry {entry.id}: {sorted(changes)}")
    return entry


def delete_time_entry(db: Session, user: User, entry_id: uuid.UUID) -> None:
    entry = get_time_entry(db, user, entry_id)
    db.delete(entry)
    db.commit()
    log.info(f"Deleted time entry {entry_id} for user {user.id}")


def time_entry_stats(
    db: Session,
    user: User,
    start_date: datetime,
    end_date: datetime,
    group_by: str = "goal",
) -> TimeEntryStats:
    """
    Hours of finished entries starting in [start_date, end_date].

    ``by_goal`` only covers entries linked to a goal; the summary and the
    source breakdown cover every finished entry. Days are taken in the
    configured timezone.
    """
    start, end = as_utc(start_date), as_utc(end_date)
    if end < start:
        raise InvalidTimeRangeError("endDate must be after startDate")

    entries = db.query(TimeEntry).filter(
        TimeEntry.user_id == user.id,
        TimeEntry.start_time >= start,
        TimeEntry.start_time <= end,
        TimeEntry.end_time != None,
    ).all()

    goal_seconds: Dict[uuid.UUID, int] = defaultdict(int)
    goal_counts: Dict[uuid.UUID, int] = defaultdict(int)
    day_seconds: Dict = defaultdict(int)
    source_seconds: Dict[str, int] = defaultdict(int)
    tz = ZoneInfo(settings.timezone)

    for entry in entries:
        seconds = entry.duration_seconds or 0
        if entry.goal_id:
            goal_seconds[entry.goal_id] += seconds
            goal_counts[entry.goal_id] += 1
        day_seconds[as_utc(entry.start_time).astimezone(tz).date()] += seconds
        source_seconds[entry.source] += seconds

    goals = {g.id: g for g in db.query(Goal).filter(Goal.id.in_(list(goal_seconds))).all()} if goal_seconds else {}
    by_goal = sorted(
        (
            GoalTime(
                goal_id=goal_id,
                goal_name=goals[goal_id].name if goal_id in goals else None,
                goal_category=goals[goal_id].category if goal_id in goals else None,
                goal_icon_url=goals[goal_id].icon_url if goal_id in goals else None,
                total_seconds=seconds,
                total_hours=_hours(seconds),
                entry_count=goal_counts[goal_id],
            )
            for goal_id, seconds in goal_seconds.items()
        ),
        key=lambda stat: stat.total_seconds,
        reverse=True,
    )

    by_day = None
    by_week = None
    if group_by in ("day", "week"):
        by_day = [
            DayTime(date=day, total_seconds=seconds, total_hours=_hours(seconds))
            for day, seconds in sorted(day_seconds.items())
        ]
    if group_by == "week":
        week_seconds: Dict = defaultdict(int)
        for day, seconds in day_seconds.items():
            week_seconds[monday_of(day)] += seconds
        by_week = [
            WeekTime(week_start=week, total_seconds=seconds, total_hours=_hours(seconds))
            for week, seconds in sorted(week_seconds.items())
        ]

    total_seconds = sum(source_seconds.values())
    return TimeEntryStats(
        summary=StatsSummary(
            total_seconds=total_seconds,
            total_hours=_hours(total_seconds),
            total_entries=len(entries),
            start_date=start,
            end_date=end,
            period_days=math.ceil((end - start) / timedelta(days=1)),
        ),
        by_goal=by_goal,
        by_day=by_day,
        by_week=by_week,
        by_source=SourceBreakdown(**{
            source: SourceTime(seconds=source_seconds[source], hours=_hours(source_seconds[source]))
            for source in ("manual", "clockify", "calendar_event")
        }),
    )
