import json
from datetime import datetime, timezone

import httpx
import pytest

from lifesync.connectors.base import TimeTrackingConnector
from lifesync.connectors.clockify_connector import ClockifyConnector
from lifesync.exceptions import AuthenticationError, ExternalServiceError, NotFoundError

BASE_URL = "https://clockify.test/api/v1"


def make_connector(handler):
    return ClockifyConnector("clockify-key-123", base_url=BASE_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestClockifyConnector:
    async def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ClockifyConnector("")

    async def test_get_current_user_sends_api_key(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["key"] = request.headers["X-Api-Key"]
            return httpx.Response(200, json={"id": "cu-1", "email": "ada@clockify.test", "name": "Ada", "activeWorkspace": "ws-1"})

        async with make_connector(handler) as connector:
            user = await connector.get_current_user()

        assert seen == {"path": "/api/v1/user", "key": "clockify-key-123"}
        assert user.id == "cu-1"
        assert user.active_workspace == "ws-1"

    async def test_unauthorized_maps_to_authentication_error(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Api key does not exist", "code": 4003})

        async with make_connector(handler) as connector:
            with pytest.raises(AuthenticationError) as exc_info:
                await connector.get_current_user()
        assert exc_info.value.message == "Invalid API key: Api key does not exist"
        assert exc_info.value.status_code == 401

    async def test_not_found_maps_to_not_found_error(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Time entry not found"})

        async with make_connector(handler) as connector:
            with pytest.raises(NotFoundError, match="Time entry not found"):
                await connector.get_time_entry("ws-1", "missing")

    async def test_other_statuses_map_to_external_service_error(self):
        def handler(request):
            return httpx.Response(503, text="upstream down")

        async with make_connector(handler) as connector:
            with pytest.raises(ExternalServiceError) as exc_info:
                await connector.get_workspaces()
        assert exc_info.value.upstream_status == 503
        assert "upstream down" in exc_info.value.message

    async def test_transport_errors_map_to_external_service_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_connector(handler) as connector:
            with pytest.raises(ExternalServiceError) as exc_info:
                await connector.get_workspaces()
        assert exc_info.value.upstream_status is None

    async def test_get_projects_excludes_archived_by_default(self):
        seen = {}

        def handler(request):
            seen["archived"] = request.url.params["archived"]
            return httpx.Response(200, json=[
                {"id": "p-1", "name": "Deep Work", "clientName": "Acme", "color": "#ff0000", "archived": False},
            ])

        async with make_connector(handler) as connector:
            projects = await connector.get_projects("ws-1")

        assert seen["archived"] == "false"
        assert projects[0].client_name == "Acme"

    async def test_get_time_entries_window_and_page_size(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{
                "id": "e-1",
                "description": "Writing",
                "projectId": None,
                "timeInterval": {"start": "2026-10-01T09:00:00Z", "end": "2026-10-01T10:30:00Z", "duration": "PT1H30M"},
            }])

        async with make_connector(handler) as connector:
            entries = await connector.get_time_entries(
                "ws-1",
                "cu-1",
                start=datetime(2026, 10, 1, tzinfo=timezone.utc),
                end=datetime(2026, 10, 8, 12, 30, tzinfo=timezone.utc),
                page_size=5000,
            )

        assert seen["path"] == "/api/v1/workspaces/ws-1/user/cu-1/time-entries"
        assert seen["params"] == {
            "page": "1",
            "page-size": "500",
            "start": "2026-10-01T00:00:00Z",
            "end": "2026-10-08T12:30:00Z",
        }
        assert entries[0].time_interval.end == datetime(2026, 10, 1, 10, 30, tzinfo=timezone.utc)
        assert not entries[0].is_running

    async def test_get_time_entries_drops_malformed_entries(self):
        def handler(request):
            return httpx.Response(200, json=[
                {"id": "e-1", "billable": None, "tagIds": None, "timeInterval": {"start": "2026-10-01T09:00:00Z"}},
                {"id": "e-bad", "billable": None, "timeInterval": {"start": None}},
            ])

        async with make_connector(handler) as connector:
            payloads = await connector.get_time_entry_payloads("ws-1", "cu-1")
            entries = await connector.get_time_entries("ws-1", "cu-1")

        assert [p["id"] for p in payloads] == ["e-1", "e-bad"]
        assert [e.id for e in entries] == ["e-1"]
        assert entries[0].billable is False
        assert entries[0].tag_ids == []
        assert entries[0].is_running

    async def test_create_project_payload(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "p-2", "name": "Deep Work"})

        async with make_connector(handler) as connector:
            project = await connector.create_project("ws-1", name="Deep Work", color="#123456")

        assert seen["method"] == "POST"
        assert seen["body"] == {"name": "Deep Work", "color": "#123456", "isPublic": True, "billable": False}
        assert project.id == "p-2"

    async def test_update_time_entry_sends_full_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "id": "e-1",
                "timeInterval": {"start": "2026-10-01T09:00:00Z", "end": "2026-10-01T10:00:00Z"},
            })

        async with make_connector(handler) as connector:
            await connector.update_time_entry(
                "ws-1",
                "e-1",
                start=datetime(2026, 10, 1, 9, tzinfo=timezone.utc),
                end=datetime(2026, 10, 1, 10, tzinfo=timezone.utc),
                description=None,
                project_id="p-1",
                tag_ids=None,
                billable=True,
            )

        assert seen["method"] == "PUT"
        assert seen["body"] == {
            "start": "2026-10-01T09:00:00Z",
            "end": "2026-10-01T10:00:00Z",
            "description": "",
            "projectId": "p-1",
            "tagIds": [],
            "billable": True,
        }

    async def test_delete_handles_empty_response(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(204)

        async with make_connector(handler) as connector:
            assert await connector.delete_time_entry("ws-1", "e-1") is True


def test_connector_interface_declares_every_operation():
    assert TimeTrackingConnector.__abstractmethods__ == {
        "get_current_user",
        "get_workspaces",
        "get_projects",
        "create_project",
        "get_time_entry_payloads",
        "get_time_entries",
        "get_time_entry",
        "create_time_entry",
        "update_time_entry",
        "delete_time_entry",
        "close",
    }
    with pytest.raises(TypeError):
        TimeTrackingConnector()
