import logging
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lifesync.config import settings
from lifesync.connectors.base import ExternalTimeEntry, TimeTrackingConnector
from lifesync.connectors.clockify_connector import ClockifyConnector
from lifesync.exceptions import (
    InactiveConnectionError,
    LifeSyncError,
    NotFoundError,
    ReconciliationError,
    SyncInProgressError,
)
from lifesync.models.connection import ClockifyConnection
from lifesync.models.sync_log import SyncLog
from lifesync.models.time_entry import TimeEntry
from lifesync.services.project_service import build_project_lookups, cache_projects
from lifesync.utils.encrypt import decrypt_api_key
from lifesync.utils.hashing import hash_external_entry
from lifesync.utils.time_utils import as_utc, monday_of, utcnow, week_datetime_range

log = logging.getLogger(__name__)

ENTRY_SOURCE = "clockify"

IMPORTED = "imported"
UPDATED = "updated"
UNCHANGED = "unchanged"


class SyncType(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class SyncStats(BaseModel):
    imported: int = 0
    updated: int = 0
    skipped: int = 0


def determine_sync_window(
    sync_type: SyncType,
    last_successful_sync_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Time window a run fetches:
    - full: the last ``full_sync_days`` days, ignoring the previous sync
    - incremental: since the last successful sync, else the last ``incremental_fallback_days`` days
    """
    now = now or utcnow()
    if SyncType(sync_type) == SyncType.FULL:
        return now - timedelta(days=settings.full_sync_days), now
    if last_successful_sync_at is not None:
        return as_utc(last_successful_sync_at), now
    return now - timedelta(days=settings.incremental_fallback_days), now


class SyncService:
    """
    Imports Clockify time entries for one connection.

    A run claims the connection, opens a SyncLog, refreshes the project cache
    (best effort), fetches one page of entries for the window and upserts each
    one by (user, Clockify entry id). Each step commits on its own; a crash
    mid-run leaves the earlier steps applied.

    With ``detect_changes`` an existing row whose stored content hash matches
    the incoming entry is left alone and counted as skipped.
    """

    def __init__(self, db: Session, client_factory: Callable[[str], TimeTrackingConnector] = ClockifyConnector):
        self.db = db
        self.client_factory = client_factory

    def _load_connection(self, connection_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> ClockifyConnection:
        query = self.db.query(ClockifyConnection).filter(ClockifyConnection.id == connection_id)
        if user_id is not None:
            query = query.filter(ClockifyConnection.user_id == user_id)
        connection = query.first()
        if connection is None:
            raise NotFoundError("Connection not found or access denied")
        if not connection.is_active:
            raise InactiveConnectionError("Connection is inactive")
        return connection

    def _claim(self, connection: ClockifyConnection, now: datetime) -> None:
        """Atomically flip the connection to 'syncing' unless a fresh run already holds it."""
        stale_before = now - timedelta(minutes=settings.sync_stale_after_minutes)
        claimed = self.db.query(ClockifyConnection).filter(
            ClockifyConnection.id == connection.id,
            or_(
                ClockifyConnection.sync_status != "syncing",
                ClockifyConnection.sync_started_at == None,
                ClockifyConnection.sync_started_at < stale_before,
            ),
        ).update(
            {"sync_status": "syncing", "sync_started_at": now},
            synchronize_session=False,
        )
        self.db.commit()
        if not claimed:
            log.warning(f"Sync for connection {connection.id} skipped: another run is in progress")
            raise SyncInProgressError("A sync is already in progress for this connection")
        self.db.refresh(connection)

    async def _cache_projects_best_effort(self, client: TimeTrackingConnector, connection: ClockifyConnection) -> None:
        try:
            await cache_projects(self.db, client, connection)
        except Exception as e:
            self.db.rollback()
            log.warning(f"Project caching failed for connection {connection.id}, continuing with entries: {e}")

    @staticmethod
    def _parse_entry(payload: Any) -> ExternalTimeEntry:
        try:
            return ExternalTimeEntry.model_validate(payload)
        except ValidationError as e:
            external_id = payload.get("id") if isinstance(payload, dict) else None
            raise ReconciliationError(
                f"Malformed Clockify entry {external_id}: {e.error_count()} validation errors",
                external_id=external_id,
            ) from e

    def _reconcile_entry(
        self,
        connection: ClockifyConnection,
        entry: ExternalTimeEntry,
        project_to_goal: Dict[str, uuid.UUID],
        project_to_row: Dict[str, uuid.UUID],
        synced_at: datetime,
        detect_changes: bool = False,
    ) -> str:
        """Upsert one entry inside a SAVEPOINT. Returns IMPORTED, UPDATED or UNCHANGED."""
        try:
            with self.db.begin_nested():
                existing = self.db.query(TimeEntry).filter(
                    TimeEntry.user_id == connection.user_id,
                    TimeEntry.clockify_entry_id == entry.id,
                ).first()

                content_hash = hash_external_entry(entry)
                if detect_changes and existing is not None and existing.content_hash == content_hash:
                    return UNCHANGED

                fields = {
                    "description": entry.description or None,
                    "start_time": as_utc(entry.time_interval.start),
                    "end_time": as_utc(entry.time_interval.end),
                    "clockify_entry_id": entry.id,
                    "clockify_project_id": project_to_row.get(entry.project_id) if entry.project_id else None,
                    "is_billable": entry.billable,
                    "goal_id": project_to_goal.get(entry.project_id) if entry.project_id else None,
                    "source": ENTRY_SOURCE,
                    "sync_status": "synced",
                    "last_synced_at": synced_at,
                    "content_hash": content_hash,
                }

                if existing is None:
                    self.db.add(TimeEntry(user_id=connection.user_id, **fields))
                    outcome = IMPORTED
                else:
                    for key, value in fields.items():
                        setattr(existing, key, value)
                    outcome = UPDATED
                self.db.flush()
        except SQLAlchemyError as e:
            raise ReconciliationError(f"Failed to store Clockify entry {entry.id}: {e}", external_id=entry.id) from e
        except Exception as e:
            raise ReconciliationError(f"Failed to reconcile Clockify entry {entry.id}: {e}", external_id=entry.id) from e
        return outcome

    def _import_entries(
        self,
        connection: ClockifyConnection,
        payloads: List[Any],
        stats: SyncStats,
        detect_changes: bool = False,
    ) -> None:
        project_to_goal, project_to_row = build_project_lookups(self.db, connection)
        synced_at = utcnow()
        for payload in payloads:
            try:
                entry = self._parse_entry(payload)
                outcome = self._reconcile_entry(
                    connection, entry, project_to_goal, project_to_row, synced_at, detect_changes
                )
            except ReconciliationError as e:
                stats.skipped += 1
                log.error(f"Skipping Clockify entry {e.external_id}: {e.message}")
                continue
            if outcome == IMPORTED:
                stats.imported += 1
            elif outcome == UPDATED:
                stats.updated += 1
            else:
                stats.skipped += 1
        self.db.commit()

    def _finish(
        self,
        connection: ClockifyConnection,
        sync_log: SyncLog,
        stats: SyncStats,
        error: Optional[str] = None,
        advance_baseline: bool = True,
    ) -> None:
        now = utcnow()
        sync_log.completed_at = now
        sync_log.duration_seconds = int((now - as_utc(sync_log.started_at)).total_seconds())
        sync_log.entries_imported = stats.imported
        sync_log.entries_updated = stats.updated
        sync_log.entries_skipped = stats.skipped

        connection.last_sync_at = now
        connection.sync_started_at = None
        if error is None:
            sync_log.status = "completed"
            connection.sync_status = "success"
            if advance_baseline:
                connection.last_successful_sync_at = now
            connection.last_sync_error = None
        else:
            sync_log.status = "failed"
            sync_log.error_message = error
            connection.sync_status = "error"
            connection.last_sync_error = error
        self.db.commit()

    async def _run(
        self,
        connection_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        sync_type: SyncType,
        window: Callable[[ClockifyConnection], Tuple[datetime, datetime]],
        detect_changes: bool,
        advance_baseline: bool,
    ) -> SyncStats:
        connection = self._load_connection(connection_id, user_id)
        started_at = utcnow()
        self._claim(connection, started_at)

        sync_log = SyncLog(
            connection_id=connection.id,
            sync_type=sync_type.value,
            direction="import",
            status="started",
            started_at=started_at,
        )
        self.db.add(sync_log)
        self.db.commit()
        log.info(f"Starting {sync_type.value} sync for connection {connection.id}")

        stats = SyncStats()
        client = None
        try:
            api_key = decrypt_api_key(connection.api_key_encrypted)
            client = self.client_factory(api_key)

            await self._cache_projects_best_effort(client, connection)

            start, end = window(connection)
            page_size = settings.entries_page_size
            payloads = await client.get_time_entry_payloads(
                connection.workspace_id,
                connection.clockify_user_id,
                start=start,
                end=end,
                page_size=page_size,
            )
            if len(payloads) >= page_size:
                # Only the first page is imported; older entries in the window are not fetched
                log.warning(
                    f"Connection {connection.id} returned a full page ({len(payloads)} entries) for "
                    f"{start.isoformat()} -> {end.isoformat()}; entries beyond the first page were not imported"
                )

            self._import_entries(connection, payloads, stats, detect_changes)
        except Exception as e:
            self.db.rollback()
            message = e.message if isinstance(e, LifeSyncError) else str(e)
            log.error(f"Sync failed for connection {connection.id}: {message}")
            self._finish(connection, sync_log, stats, error=message)
            raise
        finally:
            if client is not None:
                await client.close()

        self._finish(connection, sync_log, stats, advance_baseline=advance_baseline)
        log.info(
            f"Sync completed for connection {connection.id}: {stats.imported} imported, "
            f"{stats.updated} updated, {stats.skipped} skipped"
        )
        return stats

    async def sync(
        self,
        connection_id: uuid.UUID,
        sync_type: SyncType = SyncType.INCREMENTAL,
        user_id: Optional[uuid.UUID] = None,
        detect_changes: bool = False,
    ) -> SyncStats:
        """
        Run one import for the connection.

        Raises NotFoundError / InactiveConnectionError / SyncInProgressError
        before anything is written. Any later failure is recorded on the
        SyncLog and the connection, then re-raised; ``last_successful_sync_at``
        is only moved forward by a completed run.
        """
        sync_type = SyncType(sync_type)
        return await self._run(
            connection_id,
            user_id,
            sync_type,
            lambda connection: determine_sync_window(sync_type, connection.last_successful_sync_at),
            detect_changes=detect_changes,
            advance_baseline=True,
        )

    async def sync_week(
        self, connection_id: uuid.UUID, week_start: date, user_id: Optional[uuid.UUID] = None
    ) -> SyncStats:
        """
        Re-import one Monday-based week with change detection.

        The week may lie anywhere in the past, so a completed run leaves
        ``last_successful_sync_at`` where it was.
        """
        start, end = week_datetime_range(monday_of(week_start), settings.timezone)
        return await self._run(
            connection_id,
            user_id,
            SyncType.INCREMENTAL,
            lambda connection: (start, end),
            detect_changes=True,
            advance_baseline=False,
        )

class AutoSyncResult(BaseModel):
    total_users: int = 0
    synced_users: int = 0
    total_imported: int = 0
    total_updated: int = 0
    total_skipped: int = 0
    errors: List[Dict[str, str]] = []


async def auto_sync_batch(
    db: Session,
    batch_size: Optional[int] = None,
    client_factory: Callable[[str], TimeTrackingConnector] = ClockifyConnector,
) -> AutoSyncResult:
    """Incrementally sync the least recently synced active connections, one at a time."""
    batch_size = batch_size or settings.auto_sync_batch_size
    connections = db.query(ClockifyConnection).filter(
        ClockifyConnection.is_active == True,
        ClockifyConnection.auto_sync_enabled == True,
    ).order_by(
        ClockifyConnection.last_successful_sync_at.is_(None).desc(),
        ClockifyConnection.last_successful_sync_at.asc(),
    ).limit(batch_size).all()

    result = AutoSyncResult(total_users=len(connections))
    service = SyncService(db, client_factory=client_factory)
    for connection in connections:
        try:
            stats = await service.sync(connection.id, SyncType.INCREMENTAL, detect_changes=True)
        except Exception as e:
            message = e.message if isinstance(e, LifeSyncError) else str(e)
            result.errors.append({"connectionId": str(connection.id), "error": message})
            continue
        result.synced_users += 1
        result.total_imported += stats.imported
        result.total_updated += stats.updated
        result.total_skipped += stats.skipped

    log.info(
        f"Auto-sync finished: {result.synced_users}/{result.total_users} connections, "
        f"{result.total_imported} imported, {len(result.errors)} errors"
    )
    return result
