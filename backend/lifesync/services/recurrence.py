"""Expansion of recurring events into concrete occurrences within a date range."""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, NamedTuple, Optional
from zoneinfo import ZoneInfo

from lifesync.models.recurring_event import RecurringEvent
from lifesync.utils.time_utils import as_utc


class Occurrence(NamedTuple):
    recurring_event_id: object
    start: datetime
    end: datetime

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _js_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday, the convention stored in days_of_week."""
    return (day.weekday() + 1) % 7


def _parse_start_time(value: str) -> time:
    hours, minutes = (int(part) for part in value.split(":")[:2])
    return time(hours, minutes)


def expand_event(
    event: RecurringEvent, range_start: date, range_end: date, tz_name: str = "UTC"
) -> List[Occurrence]:
    """
    Occurrences of ``event`` on days in [range_start, range_end).

    Walks forward from ``range_start``:
    - daily: every ``interval`` days
    - weekly with days_of_week: every day, kept when its weekday is listed
    - weekly without days_of_week: every ``interval`` weeks from range_start
    - monthly: every ``interval`` months from range_start
    ``recurrence_count`` caps the occurrences produced in the range and
    ``end_date`` stops the walk.
    """
    if not event.is_active:
        return []

    tz = ZoneInfo(tz_name)
    start_time = _parse_start_time(event.start_time)
    interval = max(1, event.interval or 1)
    days = set(event.days_of_week or [])
    end_date = as_utc(event.end_date).astimezone(tz).date() if event.end_date else None

    occurrences: List[Occurrence] = []
    current = range_start
    while current < range_end:
        if event.recurrence_count and len(occurrences) >= event.recurrence_count:
            break
        if end_date is not None and current >= end_date:
            break

        if event.frequency == "weekly" and days:
            include = _js_weekday(current) in days
        else:
            include = event.frequency in ("daily", "weekly", "monthly")

        if include:
            start = datetime.combine(current, start_time, tzinfo=tz)
            occurrences.append(Occurrence(event.id, start, start + timedelta(minutes=event.duration)))

        if event.frequency == "daily":
            current += timedelta(days=interval)
        elif event.frequency == "weekly":
            current += timedelta(days=1) if days else timedelta(weeks=interval)
        elif event.frequency == "monthly":
            current = _add_months(current, interval)
        else:
            break

    return occurrences


def expand_events(
    events: Iterable[RecurringEvent],
    range_start: date,
    range_end: date,
    tz_name: str = "UTC",
    goal_id: Optional[object] = None,
) -> List[Occurrence]:
    """Expands every event, optionally only those linked to ``goal_id``."""
    result: List[Occurrence] = []
    for event in events:
        if goal_id is not None and event.goal_id != goal_id:
            continue
        result.extend(expand_event(event, range_start, range_end, tz_name))
    return result
