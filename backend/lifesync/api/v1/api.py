from fastapi import APIRouter

from lifesync.api.v1.endpoints import cron, integrations, snapshots, time_entries, timer

api_router = APIRouter()
api_router.include_router(integrations.router, prefix="/integrations/clockify", tags=["integrations"])
api_router.include_router(timer.router, prefix="/clockify", tags=["timer"])
api_router.include_router(time_entries.router, prefix="/time-entries", tags=["time-entries"])
api_router.include_router(snapshots.router, prefix="/snapshots", tags=["snapshots"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
