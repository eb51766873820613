import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from lifesync.config import settings
from lifesync.connectors.base import (
    ExternalProject,
    ExternalTimeEntry,
    ExternalUser,
    ExternalWorkspace,
    TimeTrackingConnector,
)
from lifesync.exceptions import AuthenticationError, ExternalServiceError, NotFoundError
from lifesync.utils.encrypt import mask_secret
from lifesync.utils.time_utils import to_clockify_iso

log = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


class ClockifyConnector(TimeTrackingConnector):
    """
    Connector for the Clockify REST API (v1).

    Authenticates with the static X-Api-Key header. Every upstream failure is
    translated into the application error taxonomy:
    - 401 -> AuthenticationError
    - 404 -> NotFoundError
    - anything else (HTTP or transport) -> ExternalServiceError
    No retries are attempted; the caller decides what a failure means.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("Clockify API key is required")
        self.base_url = (base_url or settings.clockify_base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.clockify_timeout_seconds,
            headers={
                "X-Api-Key": api_key,
                "Content-Type": "application/json",
            },
            transport=transport,
        )
        log.debug(f"Clockify connector initialized for key {mask_secret(api_key)} at {self.base_url}")

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict):
            return data.get("message") or data.get("error") or response.reason_phrase
        return response.reason_phrase

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Performs an authenticated request and returns the decoded JSON body (None when empty)."""
        if not path.startswith("/"):
            path = f"/{path}"

        try:
            log.trace(f"Clockify API {method} {self.base_url}{path}")
            response = await self.client.request(method, path, **kwargs)
            log.trace(f"Clockify API response: {response.status_code}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = self._error_message(e.response)
            log.error(f"Clockify API error ({status}) for {method} {path}: {message}")
            if status == 401:
                raise AuthenticationError(f"Invalid API key: {message}")
            if status == 404:
                raise NotFoundError(f"Clockify resource not found: {message}")
            raise ExternalServiceError(f"Clockify API error ({status}): {message}", upstream_status=status)
        except httpx.RequestError as e:
            log.error(f"Clockify request error for {method} {path}: {e}")
            raise ExternalServiceError(f"Clockify request failed: {e}")

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # User / workspaces

    async def get_current_user(self) -> ExternalUser:
        data = await self._request("GET", "/user")
        return ExternalUser.model_validate(data)

    async def get_workspaces(self) -> List[ExternalWorkspace]:
        data = await self._request("GET", "/workspaces")
        return [ExternalWorkspace.model_validate(w) for w in (data or [])]

    # Projects

    async def get_projects(self, workspace_id: str, include_archived: bool = False) -> List[ExternalProject]:
        params = {"archived": "true" if include_archived else "false"}
        data = await self._request("GET", f"/workspaces/{workspace_id}/projects", params=params)
        projects = [ExternalProject.model_validate(p) for p in (data or [])]
        log.debug(f"Fetched {len(projects)} Clockify projects for workspace {workspace_id}")
        return projects

    async def create_project(
        self,
        workspace_id: str,
        name: str,
        color: Optional[str] = None,
        is_public: bool = True,
        billable: bool = False,
    ) -> ExternalProject:
        payload = {
            "name": name,
            "color": color or settings.default_project_color,
            "isPublic": is_public,
            "billable": billable,
        }
        data = await self._request("POST", f"/workspaces/{workspace_id}/projects", json=payload)
        log.info(f"Created Clockify project '{name}' in workspace {workspace_id}")
        return ExternalProject.model_validate(data)

    # Time entries

    async def get_time_entry_payloads(
        self,
        workspace_id: str,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page_size: int = MAX_PAGE_SIZE,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        """Entries as Clockify sent them; the importer decodes them one at a time."""
        params: Dict[str, Any] = {"page": page, "page-size": min(page_size, MAX_PAGE_SIZE)}
        if start is not None:
            params["start"] = to_clockify_iso(start)
        if end is not None:
            params["end"] = to_clockify_iso(end)
        data = await self._request(
            "GET", f"/workspaces/{workspace_id}/user/{user_id}/time-entries", params=params
        )
        payloads = list(data or [])
        log.info(f"Received {len(payloads)} Clockify time entries ({params.get('start')} -> {params.get('end')})")
        return payloads

    async def get_time_entries(
        self,
        workspace_id: str,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page_size: int = MAX_PAGE_SIZE,
        page: int = 1,
    ) -> List[ExternalTimeEntry]:
        """Decoded entries; malformed ones are logged and left out."""
        payloads = await self.get_time_entry_payloads(workspace_id, user_id, start, end, page_size, page)
        entries = []
        for payload in payloads:
            try:
                entries.append(ExternalTimeEntry.model_validate(payload))
            except ValidationError as e:
                entry_id = payload.get("id") if isinstance(payload, dict) else None
                log.warning(f"Ignoring malformed Clockify entry {entry_id}: {e.error_count()} validation errors")
        return entries

    async def get_time_entry(self, workspace_id: str, entry_id: str) -> ExternalTimeEntry:
        data = await self._request("GET", f"/workspaces/{workspace_id}/time-entries/{entry_id}")
        return ExternalTimeEntry.model_validate(data)

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
        """Creates an entry; without ``end`` Clockify starts a running timer."""
        payload: Dict[str, Any] = {
            "start": to_clockify_iso(start),
            "description": description or "",
            "billable": billable,
        }
        if end is not None:
            payload["end"] = to_clockify_iso(end)
        if project_id:
            payload["projectId"] = project_id
        if tag_ids:
            payload["tagIds"] = tag_ids
        data = await self._request("POST", f"/workspaces/{workspace_id}/time-entries", json=payload)
        return ExternalTimeEntry.model_validate(data)

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
        """Full replace of an entry (Clockify PUT semantics: omitted fields are cleared)."""
        payload: Dict[str, Any] = {
            "start": to_clockify_iso(start),
            "description": description or "",
            "projectId": project_id,
            "tagIds": tag_ids or [],
            "billable": billable,
        }
        if end is not None:
            payload["end"] = to_clockify_iso(end)
        data = await self._request(
            "PUT", f"/workspaces/{workspace_id}/time-entries/{entry_id}", json=payload
        )
        return ExternalTimeEntry.model_validate(data)

    async def delete_time_entry(self, workspace_id: str, entry_id: str) -> bool:
        await self._request("DELETE", f"/workspaces/{workspace_id}/time-entries/{entry_id}")
        log.info(f"Deleted Clockify time entry {entry_id}")
        return True
