from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lifesync.auth import verify_cron_secret
from lifesync.database import get_db
from lifesync.schemas.snapshot import WeeklySnapshotsCronResponse
from lifesync.services.snapshot_service import create_weekly_snapshots_for_all_users

router = APIRouter()


@router.api_route(
    "/weekly-snapshots",
    methods=["GET", "POST"],
    response_model=WeeklySnapshotsCronResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def weekly_snapshots(db: Session = Depends(get_db)):
    """Scheduled trigger: snapshot last week for every user that has goals."""
    result = create_weekly_snapshots_for_all_users(db, week_offset=-1)
    return WeeklySnapshotsCronResponse(**result.model_dump())
