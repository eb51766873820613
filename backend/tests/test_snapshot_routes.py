from lifesync.models.goal import Goal
from lifesync.models.snapshot import WeeklySnapshot

API = "/api/v1/snapshots"


def add_goal(db, user, hours=10):
    goal = Goal(user_id=user.id, name="Deep Work", time_allocated=hours)
    db.add(goal)
    db.commit()
    return goal


def test_get_without_snapshot(client, user, auth_headers):
    response = client.get(API, params={"weekOffset": -1}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"snapshot": None, "goalSnapshots": [], "recurringEventSnapshots": []}


def test_create_then_get(client, db, user, auth_headers):
    add_goal(db, user)

    created = client.post(API, json={"weekOffset": -1, "isFrozen": True}, headers=auth_headers)
    assert created.status_code == 200
    snapshot = created.json()["snapshot"]
    assert snapshot["isFrozen"] is True
    assert float(snapshot["totalAllocatedHours"]) == 10

    fetched = client.get(API, params={"weekOffset": -1}, headers=auth_headers)
    assert fetched.json()["snapshot"]["id"] == snapshot["id"]
    assert [g["goalName"] for g in fetched.json()["goalSnapshots"]] == ["Deep Work"]


def test_create_twice_conflicts(client, db, user, auth_headers):
    add_goal(db, user)
    first = client.post(API, json={"weekOffset": -1}, headers=auth_headers)

    second = client.post(API, json={"weekOffset": -1}, headers=auth_headers)

    assert second.status_code == 409
    assert second.json() == {
        "error": "Snapshot already exists for this week",
        "snapshotId": first.json()["snapshot"]["id"],
    }


def test_frozen_snapshot_recalculate_forbidden(client, db, user, auth_headers):
    goal = add_goal(db, user)
    client.post(API, json={"weekOffset": -1, "isFrozen": True}, headers=auth_headers)
    goal.time_allocated = 20
    db.commit()

    changes = client.get(f"{API}/check-changes", params={"weekOffset": -1}, headers=auth_headers)
    assert changes.json()["hasChanges"] is True

    response = client.post(f"{API}/recalculate", json={"weekOffset": -1}, headers=auth_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Cannot recalculate manually frozen snapshot"}


def test_recalculate(client, db, user, auth_headers):
    goal = add_goal(db, user)
    client.post(API, json={"weekOffset": -1}, headers=auth_headers)
    goal.time_allocated = 20
    db.commit()

    response = client.post(f"{API}/recalculate", json={"weekOffset": -1}, headers=auth_headers)

    assert response.status_code == 200
    assert float(response.json()["snapshot"]["totalAllocatedHours"]) == 20
    assert float(response.json()["goalSnapshots"][0]["timeAllocated"]) == 20


def test_recalculate_requires_week_offset(client, user, auth_headers):
    response = client.post(f"{API}/recalculate", json={}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "weekOffset is required"}


def test_recalculate_missing_snapshot(client, user, auth_headers):
    response = client.post(f"{API}/recalculate", json={"weekOffset": -2}, headers=auth_headers)

    assert response.status_code == 404


def test_weekly_snapshot_cron(client, db, user, cron_headers):
    add_goal(db, user)

    assert client.post("/api/v1/cron/weekly-snapshots").status_code == 401

    response = client.post("/api/v1/cron/weekly-snapshots", headers=cron_headers)
    assert response.status_code == 200
    assert response.json()["created"] == 1
    assert db.query(WeeklySnapshot).count() == 1

    again = client.get("/api/v1/cron/weekly-snapshots", headers=cron_headers)
    assert again.json()["skipped"] == 1
