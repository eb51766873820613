from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClockifyModel(BaseModel):
    """Base for Clockify payloads: camelCase on the wire, unknown keys ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExternalUser(ClockifyModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    active_workspace: Optional[str] = Field(None, alias="activeWorkspace")
    default_workspace: Optional[str] = Field(None, alias="defaultWorkspace")


class ExternalWorkspace(ClockifyModel):
    id: str
    name: str


class ExternalProject(ClockifyModel):
    id: str
    name: str
    client_name: Optional[str] = Field(None, alias="clientName")
    color: Optional[str] = None
    archived: bool = False
    billable: bool = False
    public: bool = False


class TimeInterval(ClockifyModel):
    start: datetime
    end: Optional[datetime] = None  # None while the timer is running
    duration: Optional[str] = None  # ISO 8601 duration, e.g. PT1H30M


class ExternalTimeEntry(ClockifyModel):
    id: str
    description: Optional[str] = None
    project_id: Optional[str] = Field(None, alias="projectId")
    task_id: Optional[str] = Field(None, alias="taskId")
    user_id: Optional[str] = Field(None, alias="userId")
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    billable: bool = False
    tag_ids: List[str] = Field(default_factory=list, alias="tagIds")
    time_interval: TimeInterval = Field(..., alias="timeInterval")

    @field_validator("billable", mode="before")
    @classmethod
    def _null_billable(cls, value):
        return False if value is None else value

    @field_validator("tag_ids", mode="before")
    @classmethod
    def _null_tags(cls, value):
        return [] if value is None else value

    @property
    def is_running(self) -> bool:
        return self.time_interval.end is None


class TimeTrackingConnector(ABC):
    """Abstract base for external time-tracking services."""

    @abstractmethod
    async def get_current_user(self) -> ExternalUser:
        """Returns the account the credentials belong to; used to validate the key."""
        pass

    @abstractmethod
    async def get_workspaces(self) -> List[ExternalWorkspace]:
        pass

    @abstractmethod
    async def get_projects(self, workspace_id: str, include_archived: bool = False) -> List[ExternalProject]:
        pass

    @abstractmethod
    async def create_project(
        self,
        workspace_id: str,
        name: str,
        color: Optional[str] = None,
        is_public: bool = True,
        billable: bool = False,
    ) -> ExternalProject:
        pass

    @abstractmethod
    async def get_time_entry_payloads(
        self,
        workspace_id: str,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page_size: int = 500,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        """One page of the user's entries as undecoded JSON objects, newest first."""
        pass

    @abstractmethod
    async def get_time_entries(
        self,
        workspace_id: str,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page_size: int = 500,
        page: int = 1,
    ) -> List[ExternalTimeEntry]:
        """Fetches one page of the user's entries, newest first, optionally bounded by [start, end]."""
        pass

    @abstractmethod
    async def get_time_entry(self, workspace_id: str, entry_id: str) -> ExternalTimeEntry:
        pass

    @abstractmethod
    async def create_time_entry(
        self,
        workspace_id: str,
        start: datetime,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
        end: Optional[datetime] = None,
        tag_ids: Optional[List[str]] = None,
        billable: bool = False,
    ) -> ExternalTimeEntry:
        pass

    @abstractmethod
    async def update_time_entry(
        self,
        workspace_id: str,
        entry_id: str,
        start: datetime,
        end: Optional[datetime] = None,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
        tag_ids: Optional[List[str]] = None,
        billable: bool = False,
    ) -> ExternalTimeEntry:
        pass

    @abstractmethod
    async def delete_time_entry(self, workspace_id: str, entry_id: str) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
