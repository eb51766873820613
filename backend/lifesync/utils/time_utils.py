"""Datetime helpers shared by the sync engine, timers and snapshots."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_clockify_iso(dt: datetime) -> str:
    """Clockify expects UTC timestamps like 2024-01-01T10:00:00Z."""
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_boundaries(week_offset: int = 0, tz_name: str = "UTC", today: Optional[date] = None) -> Tuple[date, date]:
    """Monday and Sunday of the week ``week_offset`` weeks away from today."""
    if today is None:
        today = datetime.now(ZoneInfo(tz_name)).date()
    week_start = monday_of(today + timedelta(weeks=week_offset))
    return week_start, week_start + timedelta(days=6)


def week_datetime_range(week_start: date, tz_name: str = "UTC") -> Tuple[datetime, datetime]:
    """Aware [Monday 00:00, next Monday 00:00) in the given zone."""
    tz = ZoneInfo(tz_name)
    start = datetime(week_start.year, week_start.month, week_start.day, tzinfo=tz)
    return start, start + timedelta(days=7)
