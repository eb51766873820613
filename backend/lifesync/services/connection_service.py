"""Connecting, validating and disconnecting Clockify workspaces."""

import logging
import uuid
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from lifesync.connectors.base import ExternalUser, ExternalWorkspace, TimeTrackingConnector
from lifesync.connectors.clockify_connector import ClockifyConnector
from lifesync.database import SessionLocal
from lifesync.exceptions import InactiveConnectionError, NotFoundError, WorkspaceAccessError
from lifesync.models.connection import ClockifyConnection
from lifesync.models.user import User
from lifesync.services.sync_service import SyncService, SyncType
from lifesync.utils.encrypt import encrypt_api_key, mask_secret

log = logging.getLogger(__name__)

ClientFactory = Callable[[str], TimeTrackingConnector]


async def validate_api_key(
    api_key: str, client_factory: ClientFactory = ClockifyConnector
) -> Tuple[ExternalUser, List[ExternalWorkspace]]:
    """Checks the key against Clockify and returns its user and workspaces."""
    async with client_factory(api_key) as client:
        user = await client.get_current_user()
        workspaces = await client.get_workspaces()
    log.debug(f"API key {mask_secret(api_key)} is valid for Clockify user {user.id} ({len(workspaces)} workspaces)")
    return user, workspaces


async def connect(
    db: Session,
    user: User,
    api_key: str,
    workspace_id: str,
    client_factory: ClientFactory = ClockifyConnector,
) -> Tuple[ClockifyConnection, ExternalUser, ExternalWorkspace]:
    """
    Validate the key, then create or reactivate the (user, workspace) connection.

    Nothing is written when validation fails. Reconnecting a previously
    disconnected workspace refreshes the stored key on the existing row.
    """
    clockify_user, workspaces = await validate_api_key(api_key, client_factory)
    workspace = next((w for w in workspaces if w.id == workspace_id), None)
    if workspace is None:
        raise WorkspaceAccessError("Workspace not found or access denied")

    api_key_encrypted = encrypt_api_key(api_key)

    connection = db.query(ClockifyConnection).filter(
        ClockifyConnection.user_id == user.id,
        ClockifyConnection.workspace_id == workspace_id,
    ).first()
    if connection is None:
        connection = ClockifyConnection(user_id=user.id, workspace_id=workspace_id)
        db.add(connection)
        log.info(f"Creating Clockify connection for user {user.id}, workspace {workspace_id}")
    else:
        log.info(f"Reactivating Clockify connection {connection.id} for workspace {workspace_id}")

    connection.api_key_encrypted = api_key_encrypted
    connection.clockify_user_id = clockify_user.id
    connection.is_active = True
    connection.sync_status = "pending"
    connection.sync_started_at = None
    connection.auto_sync_enabled = True
    connection.sync_direction = "import_only"
    connection.sync_frequency_minutes = 30
    db.commit()
    db.refresh(connection)
    return connection, clockify_user, workspace


async def run_initial_sync(connection_id: uuid.UUID, client_factory: ClientFactory = ClockifyConnector) -> None:
    """Background full sync after connecting. Failures are logged, never raised."""
    db = SessionLocal()
    try:
        stats = await SyncService(db, client_factory=client_factory).sync(connection_id, SyncType.FULL)
        log.info(f"Initial sync for connection {connection_id} finished: {stats.imported} imported")
    except Exception as e:
        log.error(f"Initial sync for connection {connection_id} failed: {e}")
    finally:
        db.close()


def get_connection(db: Session, user: User) -> Optional[ClockifyConnection]:
    """The user's active connection, most recently updated first."""
    return db.query(ClockifyConnection).filter(
        ClockifyConnection.user_id == user.id,
        ClockifyConnection.is_active == True,
    ).order_by(ClockifyConnection.updated_at.desc()).first()


def require_connection(db: Session, user: User) -> ClockifyConnection:
    connection = get_connection(db, user)
    if connection is None:
        raise NotFoundError("No active Clockify connection found")
    return connection


def get_user_connection(db: Session, user: User, connection_id: uuid.UUID) -> ClockifyConnection:
    connection = db.query(ClockifyConnection).filter(
        ClockifyConnection.id == connection_id,
        ClockifyConnection.user_id == user.id,
    ).first()
    if connection is None:
        raise NotFoundError("Connection not found or access denied")
    return connection


def disconnect(db: Session, user: User, connection_id: uuid.UUID) -> ClockifyConnection:
    """Soft delete: projects, mappings, entries and sync logs are kept."""
    connection = get_user_connection(db, user, connection_id)
    if not connection.is_active:
        raise InactiveConnectionError("Connection is already inactive")

    connection.is_active = False
    connection.auto_sync_enabled = False
    connection.sync_status = "pending"
    db.commit()
    db.refresh(connection)
    log.info(f"Disconnected Clockify connection {connection.id}")
    return connection
