from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from lifesync.auth import get_current_active_user
from lifesync.database import get_db
from lifesync.models.snapshot import WeeklySnapshot
from lifesync.models.user import User
from lifesync.schemas.snapshot import (
    CheckChangesResponse,
    GoalSnapshotInfo,
    RecalculateRequest,
    RecurringEventSnapshotInfo,
    SnapshotCreate,
    SnapshotResponse,
    WeeklySnapshotInfo,
)
from lifesync.services import snapshot_service

router = APIRouter()


def _snapshot_response(db: Session, snapshot: WeeklySnapshot) -> SnapshotResponse:
    goal_snapshots, event_snapshots = snapshot_service.get_snapshot_children(db, snapshot)
    return SnapshotResponse(
        snapshot=WeeklySnapshotInfo.model_validate(snapshot),
        goal_snapshots=[GoalSnapshotInfo.model_validate(g) for g in goal_snapshots],
        recurring_event_snapshots=[RecurringEventSnapshotInfo.model_validate(e) for e in event_snapshots],
    )


@router.get("", response_model=SnapshotResponse)
async def get_snapshot(
    current_user: Annotated[User, Depends(get_current_active_user)],
    week_offset: int = Query(0, alias="weekOffset"),
    db: Session = Depends(get_db),
):
    """Snapshot for the week ``weekOffset`` weeks from now; ``snapshot`` is null when none exists."""
    snapshot = snapshot_service.get_snapshot(db, current_user, week_offset)
    if snapshot is None:
        return SnapshotResponse(snapshot=None)
    return _snapshot_response(db, snapshot)


@router.post("", response_model=SnapshotResponse)
async def create_snapshot(
    request: SnapshotCreate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    snapshot = snapshot_service.create_snapshot(db, current_user, request.week_offset, request.is_frozen)
    return _snapshot_response(db, snapshot)


@router.get("/check-changes", response_model=CheckChangesResponse)
async def check_changes(
    current_user: Annotated[User, Depends(get_current_active_user)],
    week_offset: int = Query(0, alias="weekOffset"),
    db: Session = Depends(get_db),
):
    return snapshot_service.check_changes(db, current_user, week_offset)


@router.post("/recalculate", response_model=SnapshotResponse)
async def recalculate(
    request: RecalculateRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    if request.week_offset is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="weekOffset is required")
    snapshot = snapshot_service.recalculate(db, current_user, request.week_offset)
    return _snapshot_response(db, snapshot)
