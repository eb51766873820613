import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from lifesync.api.deps import get_client_factory
from lifesync.auth import get_current_active_user, verify_cron_secret
from lifesync.database import get_db
from lifesync.exceptions import NotFoundError
from lifesync.models.user import User
from lifesync.schemas.base import MessageResponse
from lifesync.schemas.connection import (
    ConnectionInfo,
    ConnectionResponse,
    ConnectRequest,
    ConnectResponse,
    DisconnectRequest,
    ExternalUserInfo,
    ValidateRequest,
    ValidateResponse,
    WorkspaceInfo,
)
from lifesync.schemas.project import (
    MappingCreate,
    MappingCreateResponse,
    MappingInfo,
    MappingListResponse,
    ProjectInfo,
    ProjectListResponse,
)
from lifesync.schemas.sync import AutoSyncResponse, SyncRequest, SyncResponse
from lifesync.services import connection_service, project_service
from lifesync.services.sync_service import SyncService, auto_sync_batch
from lifesync.utils.time_utils import utcnow

router = APIRouter()


@router.post("/validate", response_model=ValidateResponse)
async def validate_api_key(
    request: ValidateRequest,
    client_factory=Depends(get_client_factory),
):
    """Validate a Clockify API key and list the workspaces it can access."""
    clockify_user, workspaces = await connection_service.validate_api_key(request.api_key, client_factory)
    return ValidateResponse(
        user=ExternalUserInfo(id=clockify_user.id, email=clockify_user.email, name=clockify_user.name),
        workspaces=[WorkspaceInfo(id=w.id, name=w.name) for w in workspaces],
    )


@router.post("/connect", response_model=ConnectResponse)
async def connect(
    request: ConnectRequest,
    background_tasks: BackgroundTasks,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Store the encrypted key for the workspace and start a full import in the background."""
    connection, clockify_user, workspace = await connection_service.connect(
        db, current_user, request.api_key, request.workspace_id, client_factory
    )
    background_tasks.add_task(connection_service.run_initial_sync, connection.id, client_factory)

    info = ConnectionInfo.model_validate(connection)
    info.workspace_name = workspace.name
    info.clockify_user_email = clockify_user.email
    return ConnectResponse(
        connection=info,
        message="Clockify connected successfully. Initial sync started in background.",
    )


@router.post("/disconnect", response_model=MessageResponse)
async def disconnect(
    request: DisconnectRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    connection_service.disconnect(db, current_user, request.connection_id)
    return MessageResponse(message="Clockify disconnected successfully")


@router.get("/connection", response_model=ConnectionResponse)
async def get_connection(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    connection = connection_service.get_connection(db, current_user)
    if connection is None:
        raise NotFoundError("No active connection")
    return ConnectionResponse(connection=ConnectionInfo.model_validate(connection))


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    current_user: Annotated[User, Depends(get_current_active_user)],
    connection_id: Optional[uuid.UUID] = Query(None, alias="connectionId"),
    db: Session = Depends(get_db),
):
    """Cached Clockify projects, optionally for one connection."""
    projects = project_service.list_projects(db, current_user, connection_id)
    return ProjectListResponse(projects=[ProjectInfo.model_validate(p) for p in projects])


@router.get("/mappings", response_model=MappingListResponse)
async def list_mappings(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    mappings = project_service.list_mappings(db, current_user)
    return MappingListResponse(mappings=[MappingInfo.model_validate(m) for m in mappings])


@router.post("/mappings", response_model=MappingCreateResponse)
async def create_mapping(
    request: MappingCreate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
):
    mapping = project_service.create_mapping(
        db, current_user, request.clockify_project_id, request.goal_id, request.auto_categorize
    )
    return MappingCreateResponse(mapping=MappingInfo.model_validate(mapping))


@router.delete("/mappings", response_model=MessageResponse)
async def delete_mapping(
    current_user: Annotated[User, Depends(get_current_active_user)],
    mapping_id: uuid.UUID = Query(..., alias="id"),
    db: Session = Depends(get_db),
):
    project_service.delete_mapping(db, current_user, mapping_id)
    return MessageResponse(message="Mapping deleted successfully")


@router.post("/sync", response_model=SyncResponse)
async def run_sync(
    request: SyncRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Trigger a manual sync for one of the user's connections."""
    started = utcnow()
    service = SyncService(db, client_factory=client_factory)
    stats = await service.sync(request.connection_id, request.sync_type, user_id=current_user.id)
    duration = int((utcnow() - started).total_seconds())
    return SyncResponse(
        stats=stats,
        duration=duration,
        message=f"Sync completed: {stats.imported} imported, {stats.updated} updated, {stats.skipped} skipped",
    )


@router.post("/auto-sync", response_model=AutoSyncResponse, dependencies=[Depends(verify_cron_secret)])
async def auto_sync(
    db: Session = Depends(get_db),
    client_factory=Depends(get_client_factory),
):
    """Scheduled trigger: incremental sync for the least recently synced connections."""
    result = await auto_sync_batch(db, client_factory=client_factory)
    return AutoSyncResponse(**result.model_dump())
