from fastapi.testclient import TestClient

from lifesync import __version__


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == __version__


def test_root(client: TestClient):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "LifeSync API"


def test_missing_token_is_unauthorized(client: TestClient):
    response = client.get("/api/v1/integrations/clockify/connection")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_unauthorized(client: TestClient):
    response = client.get(
        "/api/v1/integrations/clockify/connection",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_unknown_user_is_not_found(client: TestClient, db):
    from lifesync.auth import create_access_token

    token = create_access_token(data={"sub": "ghost@example.com"})
    response = client.get(
        "/api/v1/integrations/clockify/connection",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_validation_errors_use_error_body(client: TestClient, auth_headers):
    response = client.post("/api/v1/clockify/start-timer", json={}, headers=auth_headers)
    assert response.status_code == 400
    assert "error" in response.json()
