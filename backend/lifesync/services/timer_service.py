"""Running Clockify timers on behalf of the user's goals."""

import logging
import uuid
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from lifesync.config import settings
from lifesync.connectors.base import ExternalTimeEntry, TimeTrackingConnector
from lifesync.exceptions import NotFoundError
from lifesync.models.connection import ClockifyConnection
from lifesync.models.goal import Goal
from lifesync.models.mapping import ProjectGoalMapping
from lifesync.models.project import ClockifyProject
from lifesync.models.user import User
from lifesync.schemas.timer import (
    CurrentTimerResponse,
    GoalInfo,
    RunningTimer,
    StartTimerResponse,
    StopTimerResponse,
    TimerEntry,
    WeeklyEntriesResponse,
    WeeklyEntry,
)
from lifesync.services.project_service import ensure_project_for_goal
from lifesync.utils.time_utils import as_utc, monday_of, utcnow, week_boundaries, week_datetime_range

log = logging.getLogger(__name__)


def _timer_entry(entry: ExternalTimeEntry) -> TimerEntry:
    return TimerEntry(
        id=entry.id,
        description=entry.description,
        project_id=entry.project_id,
        start=entry.time_interval.start,
        end=entry.time_interval.end,
    )


def _mapped_goals(db: Session, user: User) -> Dict[str, Tuple[Goal, str]]:
    """Clockify project id -> (goal, project name) for the user's active mappings."""
    rows = db.query(ProjectGoalMapping, ClockifyProject, Goal).join(
        ClockifyProject, ProjectGoalMapping.clockify_project_id == ClockifyProject.id
    ).join(
        Goal, ProjectGoalMapping.goal_id == Goal.id
    ).filter(
        ProjectGoalMapping.user_id == user.id,
        ProjectGoalMapping.is_active == True,
    ).order_by(ProjectGoalMapping.created_at).all()

    lookup: Dict[str, Tuple[Goal, str]] = {}
    for _, project, goal in rows:
        lookup.setdefault(project.clockify_project_id, (goal, project.name))
    return lookup


async def start_timer(
    db: Session,
    user: User,
    connection: ClockifyConnection,
    client: TimeTrackingConnector,
    goal_id: uuid.UUID,
    description: Optional[str] = None,
) -> StartTimerResponse:
    """Start a running Clockify entry for the goal. Project trouble never blocks the start."""
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if goal is None:
        raise NotFoundError("Goal not found")

    project_id, project_created = await ensure_project_for_goal(db, client, connection, goal)

    entry = await client.create_time_entry(
        connection.workspace_id,
        start=utcnow(),
        description=description or goal.name,
        project_id=project_id,
    )
    log.info(f"Started Clockify timer {entry.id} for goal {goal.id} (project={project_id})")
    return StartTimerResponse(time_entry=_timer_entry(entry), project_created=project_created)


async def stop_timer(
    db: Session, user: User, connection: ClockifyConnection, client: TimeTrackingConnector, time_entry_id: str
) -> StopTimerResponse:
    """Close the entry at now; Clockify PUT is a full replace so every field is sent back."""
    entry = await client.get_time_entry(connection.workspace_id, time_entry_id)
    updated = await client.update_time_entry(
        connection.workspace_id,
        time_entry_id,
        start=entry.time_interval.start,
        end=utcnow(),
        description=entry.description,
        project_id=entry.project_id,
        tag_ids=entry.tag_ids,
        billable=entry.billable,
    )
    log.info(f"Stopped Clockify timer {time_entry_id} for user {user.id}")
    return StopTimerResponse(time_entry=_timer_entry(updated))


async def delete_timer(connection: ClockifyConnection, client: TimeTrackingConnector, time_entry_id: str) -> None:
    await client.delete_time_entry(connection.workspace_id, time_entry_id)


async def current_timer(
    db: Session, user: User, connection: ClockifyConnection, client: TimeTrackingConnector
) -> CurrentTimerResponse:
    # The running entry, if any, is always the newest one
    entries = await client.get_time_entries(connection.workspace_id, connection.clockify_user_id, page_size=1)
    running = next((e for e in entries if e.is_running), None)
    if running is None:
        return CurrentTimerResponse(connected=True, timer=None)

    goal_info = None
    if running.project_id:
        mapped = _mapped_goals(db, user).get(running.project_id)
        if mapped is not None:
            goal, _ = mapped
            goal_info = GoalInfo(id=goal.id, name=goal.name, color=goal.color)

    started = as_utc(running.time_interval.start)
    return CurrentTimerResponse(
        connected=True,
        timer=RunningTimer(
            id=running.id,
            description=running.description,
            start_time=started,
            duration_seconds=max(0, int((utcnow() - started).total_seconds())),
            project_id=running.project_id,
            goal=goal_info,
        ),
    )


def resolve_week_start(value: Optional[str]) -> date:
    """Accepts YYYY-MM-DD or an ISO timestamp and returns the Monday of that week."""
    if not value:
        return week_boundaries(0, settings.timezone)[0]
    if "T" in value:
        day = datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    else:
        day = date.fromisoformat(value)
    return monday_of(day)


async def weekly_entries(
    db: Session,
    user: User,
    connection: ClockifyConnection,
    client: TimeTrackingConnector,
    week_start: date,
) -> WeeklyEntriesResponse:
    start, end = week_datetime_range(monday_of(week_start), settings.timezone)
    entries = await client.get_time_entries(
        connection.workspace_id,
        connection.clockify_user_id,
        start=start,
        end=end,
        page_size=settings.entries_page_size,
    )
    mapped = _mapped_goals(db, user)

    enriched = []
    for entry in entries:
        goal, project_name = mapped.get(entry.project_id, (None, None)) if entry.project_id else (None, None)
        duration = 0
        if entry.time_interval.end is not None:
            duration = max(0, int((entry.time_interval.end - entry.time_interval.start).total_seconds()))
        enriched.append(WeeklyEntry(
            id=entry.id,
            description=entry.description or None,
            start_time=entry.time_interval.start,
            end_time=entry.time_interval.end,
            duration_seconds=duration,
            is_billable=entry.billable,
            goal_id=goal.id if goal else None,
            goal_name=goal.name if goal else None,
            goal_color=goal.color if goal else None,
            clockify_project_id=entry.project_id,
            clockify_project_name=project_name,
            tags=entry.tag_ids,
        ))

    log.debug(f"Weekly entries for user {user.id} from {start.isoformat()}: {len(enriched)}")
    return WeeklyEntriesResponse(
        week_start=start,
        week_end=end,
        entries=enriched,
        total_entries=len(enriched),
    )
