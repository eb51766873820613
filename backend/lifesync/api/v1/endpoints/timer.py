from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from lifesync.api.deps import get_client_factory
from lifesync.auth import get_current_active_user
from lifesync.config import settings
from lifesync.database import get_db
from lifesync.models.user import User
from lifesync.schemas.base import MessageResponse
from lifesync.schemas.sync import SyncWeekRequest, SyncWeekResponse, SyncWeekStats
from lifesync.schemas.timer import (
    CurrentTimerResponse,
    DeleteTimerRequest,
    StartTimerRequest,
    StartTimerResponse,
    StopTimerRequest,
    StopTimerResponse,
    WeeklyEntriesResponse,
)
from lifesync.services import timer_service
from lifesync.services.connection_service import get_connection, require_connection
from lifesync.services.sync_service import SyncService
from lifesync.utils.encrypt import decrypt_api_key
from lifesync.utils.time_utils import utcnow, week_datetime_range

router = APIRouter()


@router.post("/start-timer", response_model=StartTimerResponse)
async def start_timer(
    request: StartTimerRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Start a Clockify timer for a goal, provisioning its project on first use."""
    connection = require_connection(db, current_user)
    async with client_factory(decrypt_api_key(connection.api_key_encrypted)) as client:
        return await timer_service.start_timer(
            db, current_user, connection, client, request.goal_id, request.description
        )


@router.post("/stop-timer", response_model=StopTimerResponse)
async def stop_timer(
    request: StopTimerRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    connection = require_connection(db, current_user)
    async with client_factory(decrypt_api_key(connection.api_key_encrypted)) as client:
        return await timer_service.stop_timer(db, current_user, connection, client, request.time_entry_id)


@router.post("/delete-timer", response_model=MessageResponse)
async def delete_timer(
    request: DeleteTimerRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    connection = require_connection(db, current_user)
    async with client_factory(decrypt_api_key(connection.api_key_encrypted)) as client:
        await timer_service.delete_timer(connection, client, request.time_entry_id)
    return MessageResponse(message="Time entry deleted successfully")


@router.get("/current-timer", response_model=CurrentTimerResponse)
async def current_timer(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """The running timer, or ``connected: false`` when Clockify is not linked."""
    connection = get_connection(db, current_user)
    if connection is None:
        return CurrentTimerResponse(connected=False, timer=None)
    async with client_factory(decrypt_api_key(connection.api_key_encrypted)) as client:
        return await timer_service.current_timer(db, current_user, connection, client)


@router.get("/weekly-entries", response_model=WeeklyEntriesResponse)
async def weekly_entries(
    current_user: Annotated[User, Depends(get_current_active_user)],
    week_start: Optional[str] = Query(None, alias="weekStart"),
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Clockify entries of the Monday-based week containing ``weekStart`` (default: this week)."""
    try:
        monday = timer_service.resolve_week_start(week_start)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid weekStart parameter")
    connection = require_connection(db, current_user)
    async with client_factory(decrypt_api_key(connection.api_key_encrypted)) as client:
        return await timer_service.weekly_entries(db, current_user, connection, client, monday)


@router.post("/sync-week", response_model=SyncWeekResponse)
async def sync_week(
    request: SyncWeekRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Re-import one week from Clockify, leaving entries whose content hash is unchanged untouched."""
    if not request.week_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing weekStart parameter")
    try:
        monday = timer_service.resolve_week_start(request.week_start)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid weekStart parameter")

    connection = require_connection(db, current_user)
    started = utcnow()
    stats = await SyncService(db, client_factory=client_factory).sync_week(
        connection.id, monday, user_id=current_user.id
    )
    week_start, week_end = week_datetime_range(monday, settings.timezone)
    return SyncWeekResponse(
        week_start=week_start,
        week_end=week_end,
        stats=SyncWeekStats(
            total=stats.imported + stats.updated + stats.skipped,
            inserted=stats.imported,
            updated=stats.updated,
            skipped=stats.skipped,
        ),
        duration=int((utcnow() - started).total_seconds() * 1000),
    )
