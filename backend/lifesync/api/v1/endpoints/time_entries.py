import uuid
from datetime import datetime
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lifesync.auth import get_current_active_user
from lifesync.database import get_db
from lifesync.models.user import User
from lifesync.schemas.base import MessageResponse
from lifesync.schemas.time_entry import (
    TimeEntryCreate,
    TimeEntryListResponse,
    TimeEntryResponse,
    TimeEntryStatsResponse,
    TimeEntryUpdate,
)
from lifesync.services import time_entry_service

router = APIRouter()


@router.get("", response_model=TimeEntryListResponse)
async def list_time_entries(
    current_user: Annotated[User, Depends(get_current_active_user)],
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    goal_id: Optional[uuid.UUID] = Query(None, alias="goalId"),
    source: Optional[str] = Query(None),
    page: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=500, alias="pageSize"),
    db: Session = Depends(get_db),
):
    """The user's entries, newest first, filtered and paginated (``page`` is zero-based)."""
    entries, pagination = time_entry_service.list_time_entries(
        db, current_user, start_date, end_date, goal_id, source, page, page_size
    )
    return TimeEntryListResponse(entries=entries, pagination=pagination)


@router.post("", response_model=TimeEntryResponse)
async def create_time_entry(
    request: TimeEntryCreate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    entry = time_entry_service.create_time_entry(db, current_user, request)
    return TimeEntryResponse(
        entry=time_entry_service.describe_entries(db, [entry])[0],
        message="Time entry created successfully",
    )


@router.get("/stats", response_model=TimeEntryStatsResponse)
async def time_entry_stats(
    current_user: Annotated[User, Depends(get_current_active_user)],
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    group_by: Literal["goal", "day", "week"] = Query("goal", alias="groupBy"),
    db: Session = Depends(get_db),
):
    stats = time_entry_service.time_entry_stats(db, current_user, start_date, end_date, group_by)
    return TimeEntryStatsResponse(stats=stats)


@router.get("/{entry_id}", response_model=TimeEntryResponse)
async def get_time_entry(
    entry_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    entry = time_entry_service.get_time_entry(db, current_user, entry_id)
    return TimeEntryResponse(entry=time_entry_service.describe_entries(db, [entry])[0])


@router.put("/{entry_id}", response_model=TimeEntryResponse)
async def update_time_entry(
    entry_id: uuid.UUID,
    request: TimeEntryUpdate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    entry = time_entry_service.update_time_entry(db, current_user, entry_id, request)
    return TimeEntryResponse(
        entry=time_entry_service.describe_entries(db, [entry])[0],
        message="Time entry updated successfully",
    )


@router.delete("/{entry_id}", response_model=MessageResponse)
async def delete_time_entry(
    entry_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    time_entry_service.delete_time_entry(db, current_user, entry_id)
    return MessageResponse(message="Time entry deleted successfully")
