import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from lifesync.schemas.base import CamelModel


class ValidateRequest(CamelModel):
    api_key: str = Field(..., min_length=1)


class ExternalUserInfo(CamelModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class WorkspaceInfo(CamelModel):
    id: str
    name: str


class ValidateResponse(CamelModel):
    valid: bool = True
    user: ExternalUserInfo
    workspaces: List[WorkspaceInfo]


class ConnectRequest(CamelModel):
    api_key: str = Field(..., min_length=1)
    workspace_id: str = Field(..., min_length=1)


class ConnectionInfo(CamelModel):
    """Connection as shown to its owner. The encrypted key is never included."""
    id: uuid.UUID
    workspace_id: str
    workspace_name: Optional[str] = None
    clockify_user_id: str
    clockify_user_email: Optional[str] = None
    sync_status: str
    last_sync_at: Optional[datetime] = None
    last_successful_sync_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    is_active: bool
    auto_sync_enabled: bool
    sync_direction: str
    sync_frequency_minutes: int


class ConnectResponse(CamelModel):
    success: bool = True
    connection: ConnectionInfo
    message: str


class ConnectionResponse(CamelModel):
    connection: ConnectionInfo


class DisconnectRequest(CamelModel):
    connection_id: uuid.UUID
