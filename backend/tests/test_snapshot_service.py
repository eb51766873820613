import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from lifesync.exceptions import FrozenSnapshotError, NotFoundError, SnapshotExistsError
from lifesync.models.goal import Goal
from lifesync.models.recurring_event import RecurringEvent
from lifesync.models.snapshot import GoalSnapshot, RecurringEventSnapshot, WeeklySnapshot
from lifesync.models.user import User
from lifesync.services import snapshot_service
from lifesync.services.recurrence import expand_event
from lifesync.services.snapshot_service import (
    calculate_goal_progress,
    calculate_weekly_stats,
    check_changes,
    create_snapshot,
    create_weekly_snapshots_for_all_users,
    generate_snapshot_hash,
    recalculate,
)

WEEK = date(2026, 10, 12)  # Monday


def make_goal(**overrides):
    fields = dict(id=uuid.uuid4(), name="Goal", time_allocated=10, status="in_progress", category="learning")
    fields.update(overrides)
    return Goal(**fields)


def make_event(**overrides):
    fields = dict(
        id=uuid.uuid4(),
        title="Session",
        start_time="09:00",
        duration=60,
        frequency="daily",
        interval=1,
        days_of_week=None,
        is_active=True,
    )
    fields.update(overrides)
    return RecurringEvent(**fields)


class TestSnapshotHash:
    def test_order_independent(self):
        goals = [make_goal(), make_goal(time_allocated=5)]
        events = [make_event(goal_id=goals[0].id), make_event(frequency="weekly", days_of_week=[1, 3])]

        assert generate_snapshot_hash(goals, events) == generate_snapshot_hash(goals[::-1], events[::-1])

    def test_sensitive_to_allocation_and_events(self):
        goal = make_goal()
        event = make_event(goal_id=goal.id)
        baseline = generate_snapshot_hash([goal], [event])

        assert generate_snapshot_hash([goal], []) != baseline
        assert generate_snapshot_hash([goal], [event, make_event()]) != baseline

        goal.time_allocated = 12
        assert generate_snapshot_hash([goal], [event]) != baseline

    def test_ignores_cosmetic_fields(self):
        goal = make_goal()
        baseline = generate_snapshot_hash([goal], [])
        goal.name = "Renamed"
        goal.color = "#000000"
        assert generate_snapshot_hash([goal], []) == baseline


class TestRecurrence:
    def test_weekly_days_of_week(self):
        event = make_event(frequency="weekly", days_of_week=[1, 3])  # Monday, Wednesday
        occurrences = expand_event(event, WEEK, WEEK + timedelta(days=7))
        assert [o.start.date() for o in occurrences] == [date(2026, 10, 12), date(2026, 10, 14)]

    def test_daily_interval_and_count(self):
        every_other = make_event(interval=2)
        assert len(expand_event(every_other, WEEK, WEEK + timedelta(days=7))) == 4

        capped = make_event(recurrence_count=2)
        assert len(expand_event(capped, WEEK, WEEK + timedelta(days=7))) == 2

    def test_end_date_and_inactive(self):
        ending = make_event(end_date=datetime(2026, 10, 15, tzinfo=timezone.utc))
        assert len(expand_event(ending, WEEK, WEEK + timedelta(days=7))) == 3
        assert expand_event(make_event(is_active=False), WEEK, WEEK + timedelta(days=7)) == []

    def test_monthly_once_per_week(self):
        occurrences = expand_event(make_event(frequency="monthly", duration=90), WEEK, WEEK + timedelta(days=7))
        assert len(occurrences) == 1
        assert occurrences[0].hours == 1.5


class TestStats:
    def test_goal_progress_splits_completed_and_scheduled(self):
        goal = make_goal(time_allocated=10)
        event = make_event(goal_id=goal.id)
        now = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)  # Wednesday noon

        progress = calculate_goal_progress(goal, [event, make_event()], WEEK, now=now, tz_name="UTC")

        assert progress.completed == 3.0
        assert progress.scheduled == 4.0
        assert progress.unscheduled == 3.0
        assert progress.total_allocated == 10.0

    def test_free_time_can_go_negative(self):
        goals = [make_goal(time_allocated=80), make_goal(time_allocated=50)]

        stats = calculate_weekly_stats(goals, [], WEEK, total_available_hours=112)

        assert stats.total_allocated_hours == 130
        assert stats.free_time_hours == -18


@pytest.fixture
def planned_goal(db, user):
    goal = Goal(user_id=user.id, name="Deep Work", time_allocated=10, status="in_progress")
    db.add(goal)
    db.flush()
    db.add(RecurringEvent(
        user_id=user.id, goal_id=goal.id, title="Focus block", start_time="09:00",
        duration=120, frequency="weekly", interval=1, days_of_week=[1, 2, 3],
    ))
    db.commit()
    db.refresh(goal)
    return goal


def child_counts(db, snapshot):
    return (
        db.query(GoalSnapshot).filter(GoalSnapshot.weekly_snapshot_id == snapshot.id).count(),
        db.query(RecurringEventSnapshot).filter(RecurringEventSnapshot.weekly_snapshot_id == snapshot.id).count(),
    )


class TestSnapshots:
    def test_create_copies_goals_and_events(self, db, user, planned_goal):
        snapshot = create_snapshot(db, user, week_offset=-1)

        assert snapshot.week_end_date - snapshot.week_start_date == timedelta(days=6)
        assert snapshot.week_start_date.weekday() == 0
        assert float(snapshot.total_available_hours) == 112
        assert float(snapshot.total_allocated_hours) == 10
        assert float(snapshot.total_completed_hours) == 6
        assert float(snapshot.free_time_hours) == 102
        assert child_counts(db, snapshot) == (1, 1)

        event_snapshot = db.query(RecurringEventSnapshot).one()
        goal_snapshot = db.query(GoalSnapshot).one()
        assert event_snapshot.goal_snapshot_id == goal_snapshot.id
        assert event_snapshot.days_of_week == [1, 2, 3]
        assert goal_snapshot.goal_name == "Deep Work"

    def test_second_create_conflicts(self, db, user, planned_goal):
        snapshot = create_snapshot(db, user, week_offset=-1)

        with pytest.raises(SnapshotExistsError) as exc_info:
            create_snapshot(db, user, week_offset=-1)
        assert exc_info.value.snapshot_id == snapshot.id
        assert exc_info.value.to_response()["snapshotId"] == str(snapshot.id)

    def test_check_changes_without_snapshot(self, db, user):
        result = check_changes(db, user, week_offset=-1)
        assert (result.has_snapshot, result.has_changes, result.can_recalculate) == (False, False, False)

    def test_frozen_snapshot_detects_changes_but_cannot_recalculate(self, db, user, planned_goal):
        snapshot = create_snapshot(db, user, week_offset=-1, is_frozen=True)
        before = child_counts(db, snapshot)
        stored_hash = snapshot.snapshot_hash

        planned_goal.time_allocated = 15
        db.commit()

        result = check_changes(db, user, week_offset=-1)
        assert result.has_snapshot is True
        assert result.has_changes is True
        assert result.can_recalculate is True

        with pytest.raises(FrozenSnapshotError):
            recalculate(db, user, week_offset=-1)

        db.refresh(snapshot)
        assert snapshot.snapshot_hash == stored_hash
        assert float(snapshot.total_allocated_hours) == 10
        assert child_counts(db, snapshot) == before

    def test_current_week_is_never_recalculable(self, db, user, planned_goal):
        create_snapshot(db, user, week_offset=0)
        assert check_changes(db, user, week_offset=0).can_recalculate is False

    def test_recalculate_replaces_children(self, db, user, planned_goal):
        snapshot = create_snapshot(db, user, week_offset=-1)
        old_goal_snapshot_ids = {g.id for g in db.query(GoalSnapshot).all()}

        db.add(Goal(user_id=user.id, name="Reading", time_allocated=4))
        db.commit()
        assert check_changes(db, user, week_offset=-1).has_changes is True

        recalculated = recalculate(db, user, week_offset=-1)

        assert recalculated.id == snapshot.id
        assert float(recalculated.total_allocated_hours) == 14
        assert child_counts(db, recalculated) == (2, 1)
        assert not old_goal_snapshot_ids & {g.id for g in db.query(GoalSnapshot).all()}
        assert check_changes(db, user, week_offset=-1).has_changes is False

    def test_recalculate_missing_snapshot(self, db, user):
        with pytest.raises(NotFoundError):
            recalculate(db, user, week_offset=-1)

    def test_weekly_batch_skips_users_without_goals_or_with_snapshot(self, db, user, planned_goal):
        idle = User(email="idle@example.com")
        db.add(idle)
        db.commit()

        first = create_weekly_snapshots_for_all_users(db)
        assert (first.total_users, first.created, first.skipped, first.errors) == (2, 1, 1, [])
        assert first.week_start == snapshot_service.week_boundaries(-1, "UTC")[0]

        second = create_weekly_snapshots_for_all_users(db)
        assert (second.created, second.skipped) == (0, 2)
        assert db.query(WeeklySnapshot).count() == 1
