import uuid
from datetime import datetime
from typing import Dict, List, Optional

from lifesync.schemas.base import CamelModel
from lifesync.services.sync_service import SyncStats, SyncType


class SyncRequest(CamelModel):
    connection_id: uuid.UUID
    sync_type: SyncType = SyncType.INCREMENTAL


class SyncResponse(CamelModel):
    success: bool = True
    stats: SyncStats
    duration: int  # seconds
    message: str


class AutoSyncResponse(CamelModel):
    success: bool = True
    total_users: int
    synced_users: int
    total_imported: int
    total_updated: int
    total_skipped: int
    errors: List[Dict[str, str]] = []


class SyncWeekRequest(CamelModel):
    week_start: Optional[str] = None  # YYYY-MM-DD or ISO timestamp inside the week


class SyncWeekStats(CamelModel):
    total: int
    inserted: int
    updated: int
    skipped: int


class SyncWeekResponse(CamelModel):
    success: bool = True
    week_start: datetime
    week_end: datetime
    stats: SyncWeekStats
    duration: int  # milliseconds
