from unittest.mock import AsyncMock, patch

from lifesync.exceptions import AuthenticationError, ExternalServiceError
from lifesync.models.connection import ClockifyConnection
from lifesync.models.mapping import ProjectGoalMapping
from lifesync.models.project import ClockifyProject
from lifesync.services import connection_service
from lifesync.utils.encrypt import decrypt_api_key

from conftest import make_payload

API = "/api/v1/integrations/clockify"


def test_validate_lists_workspaces(client, clockify):
    response = client.post(f"{API}/validate", json={"apiKey": "clockify-test-key-123"})

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["user"]["email"] == "ada@clockify.test"
    assert data["workspaces"] == [{"id": "ws-1", "name": "Personal"}]


def test_connect_creates_pending_connection_and_schedules_sync(client, db, user, auth_headers, client_factory):
    with patch.object(connection_service, "run_initial_sync", new_callable=AsyncMock) as initial_sync:
        response = client.post(
            f"{API}/connect",
            json={"apiKey": "clockify-test-key-123", "workspaceId": "ws-1"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["connection"]["syncStatus"] == "pending"
    assert data["connection"]["workspaceName"] == "Personal"
    assert data["connection"]["clockifyUserEmail"] == "ada@clockify.test"
    assert "apiKeyEncrypted" not in data["connection"]

    connection = db.query(ClockifyConnection).one()
    assert connection.clockify_user_id == "cu-1"
    assert connection.api_key_encrypted != "clockify-test-key-123"
    assert decrypt_api_key(connection.api_key_encrypted) == "clockify-test-key-123"
    initial_sync.assert_called_once_with(connection.id, client_factory)


def test_connect_with_invalid_key_writes_nothing(client, db, user, auth_headers, clockify):
    clockify.get_current_user.side_effect = AuthenticationError("Invalid API key: Api key does not exist")

    response = client.post(
        f"{API}/connect",
        json={"apiKey": "wrong-key", "workspaceId": "ws-1"},
        headers=auth_headers,
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid API key: Api key does not exist"}
    assert db.query(ClockifyConnection).count() == 0


def test_connect_to_unknown_workspace_is_forbidden(client, db, user, auth_headers):
    response = client.post(
        f"{API}/connect",
        json={"apiKey": "clockify-test-key-123", "workspaceId": "ws-other"},
        headers=auth_headers,
    )

    assert response.status_code == 403
    assert db.query(ClockifyConnection).count() == 0


def test_reconnect_reactivates_existing_row(client, db, user, connection, auth_headers):
    connection.is_active = False
    connection.auto_sync_enabled = False
    db.commit()
    original_id = connection.id

    with patch.object(connection_service, "run_initial_sync", new_callable=AsyncMock):
        response = client.post(
            f"{API}/connect",
            json={"apiKey": "rotated-key-456", "workspaceId": "ws-1"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    rows = db.query(ClockifyConnection).all()
    assert len(rows) == 1
    assert rows[0].id == original_id
    assert rows[0].is_active is True
    assert rows[0].auto_sync_enabled is True
    assert decrypt_api_key(rows[0].api_key_encrypted) == "rotated-key-456"


def test_get_connection(client, connection, auth_headers):
    response = client.get(f"{API}/connection", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["connection"]["id"] == str(connection.id)
    assert response.json()["connection"]["workspaceId"] == "ws-1"


def test_get_connection_without_one(client, user, auth_headers):
    response = client.get(f"{API}/connection", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "No active connection"}


def test_disconnect(client, db, connection, auth_headers):
    response = client.post(f"{API}/disconnect", json={"connectionId": str(connection.id)}, headers=auth_headers)

    assert response.status_code == 200
    db.refresh(connection)
    assert connection.is_active is False

    again = client.post(f"{API}/disconnect", json={"connectionId": str(connection.id)}, headers=auth_headers)
    assert again.status_code == 400


def test_disconnect_other_users_connection_is_not_found(client, db, connection):
    from lifesync.auth import create_access_token
    from lifesync.models.user import User

    other = User(email="grace@example.com")
    db.add(other)
    db.commit()
    headers = {"Authorization": f"Bearer {create_access_token(data={'sub': other.email})}"}

    response = client.post(f"{API}/disconnect", json={"connectionId": str(connection.id)}, headers=headers)

    assert response.status_code == 404
    db.refresh(connection)
    assert connection.is_active is True


def test_manual_sync(client, connection, clockify, auth_headers):
    clockify.get_time_entry_payloads.return_value = [make_payload("e-1", "2026-10-15T09:00:00Z", "2026-10-15T10:00:00Z")]

    response = client.post(
        f"{API}/sync",
        json={"connectionId": str(connection.id), "syncType": "full"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["stats"] == {"imported": 1, "updated": 0, "skipped": 0}
    assert data["message"].startswith("Sync completed")


def test_manual_sync_failure_is_reported(client, db, connection, clockify, auth_headers):
    clockify.get_time_entry_payloads.side_effect = ExternalServiceError("Clockify API error (503): down", upstream_status=503)

    response = client.post(f"{API}/sync", json={"connectionId": str(connection.id)}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json() == {"error": "Clockify API error (503): down"}
    db.refresh(connection)
    assert connection.sync_status == "error"


def test_auto_sync_requires_cron_secret(client, connection):
    assert client.post(f"{API}/auto-sync").status_code == 401
    assert client.post(f"{API}/auto-sync", headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_auto_sync(client, connection, cron_headers):
    response = client.post(f"{API}/auto-sync", headers=cron_headers)

    assert response.status_code == 200
    assert response.json()["syncedUsers"] == 1


def test_projects_and_mappings(client, db, connection, goal, auth_headers):
    project = ClockifyProject(connection_id=connection.id, clockify_project_id="p-1", name="Deep Work")
    db.add(project)
    db.commit()

    projects = client.get(f"{API}/projects", params={"connectionId": str(connection.id)}, headers=auth_headers)
    assert projects.status_code == 200
    assert [p["clockifyProjectId"] for p in projects.json()["projects"]] == ["p-1"]

    body = {"clockifyProjectId": str(project.id), "goalId": str(goal.id)}
    created = client.post(f"{API}/mappings", json=body, headers=auth_headers)
    assert created.status_code == 200
    mapping = created.json()["mapping"]
    assert mapping["project"]["name"] == "Deep Work"
    assert mapping["goal"]["id"] == str(goal.id)

    duplicate = client.post(f"{API}/mappings", json=body, headers=auth_headers)
    assert duplicate.status_code == 409

    listed = client.get(f"{API}/mappings", headers=auth_headers)
    assert len(listed.json()["mappings"]) == 1

    deleted = client.delete(f"{API}/mappings", params={"id": mapping["id"]}, headers=auth_headers)
    assert deleted.status_code == 200
    assert db.query(ProjectGoalMapping).count() == 0
