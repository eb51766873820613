from lifesync.models.user import User
from lifesync.models.goal import Goal
from lifesync.models.recurring_event import RecurringEvent
from lifesync.models.connection import ClockifyConnection
from lifesync.models.project import ClockifyProject
from lifesync.models.mapping import ProjectGoalMapping
from lifesync.models.time_entry import TimeEntry
from lifesync.models.sync_log import SyncLog
from lifesync.models.snapshot import WeeklySnapshot, GoalSnapshot, RecurringEventSnapshot

__all__ = [
    "User",
    "Goal",
    "RecurringEvent",
    "ClockifyConnection",
    "ClockifyProject",
    "ProjectGoalMapping",
    "TimeEntry",
    "SyncLog",
    "WeeklySnapshot",
    "GoalSnapshot",
    "RecurringEventSnapshot",
]
