"""Tests for the HTTP layer."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from taskflow.database import get_db
from taskflow.errors import RepositoryFailure
from taskflow.main import app
from taskflow.routers.auth import create_access_token


@pytest.fixture
def client(session):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


def create(client, admin_user, **fields):
    payload = {"title": "Ship", "description": "v1", "priority": "high", "assignedTo": []}
    payload.update(fields)
    response = client.post("/api/tasks", json=payload, headers=auth(admin_user))
    assert response.status_code == 201, response.text
    return response.json()["task"]


@pytest.mark.integration
def test_requires_authentication(client):
    response = client.get("/api/tasks")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated"}


@pytest.mark.integration
def test_create_returns_camel_case_task(client, admin_user, member_user):
    task = create(
        client,
        admin_user,
        assignedTo=[member_user.id],
        todoChecklist=[{"title": "a", "completed": True}, {"title": "b", "completed": False}],
    )
    assert task["assignedTo"] == [member_user.id]
    assert task["progress"] == 50
    assert task["status"] == "in-progress"
    assert task["createdBy"] == admin_user.id
    assert "dueDate" in task


@pytest.mark.integration
def test_create_with_scalar_assignee_is_bad_request(client, admin_user, member_user):
    response = client.post(
        "/api/tasks",
        json={"title": "t", "description": "d", "priority": "low", "assignedTo": member_user.id},
        headers=auth(admin_user),
    )
    assert response.status_code == 400
    assert "assignedTo" in response.json()["message"]


@pytest.mark.integration
def test_member_cannot_create(client, member_user):
    response = client.post(
        "/api/tasks",
        json={"title": "t", "description": "d", "priority": "low", "assignedTo": []},
        headers=auth(member_user),
    )
    assert response.status_code == 403


@pytest.mark.integration
def test_listing_with_status_summary(client, admin_user, member_user):
    create(client, admin_user, assignedTo=[member_user.id], todoChecklist=[{"title": "a", "completed": True}])
    create(client, admin_user)

    body = client.get("/api/tasks", headers=auth(member_user)).json()
    assert len(body["tasks"]) == 1
    listed = body["tasks"][0]
    assert listed["completedTodoCount"] == 1
    assert listed["assignedTo"][0]["email"] == member_user.email
    assert body["statusSummary"] == {"all": 1, "pendingTasks": 0, "inProgressTasks": 0, "completedTasks": 1}

    admin_body = client.get("/api/tasks?status=pending", headers=auth(admin_user)).json()
    assert len(admin_body["tasks"]) == 1
    assert admin_body["statusSummary"]["all"] == 2


@pytest.mark.integration
def test_get_task_not_found_and_forbidden(client, admin_user, member_user):
    task = create(client, admin_user)
    assert client.get("/api/tasks/missing", headers=auth(admin_user)).status_code == 404
    assert client.get(f"/api/tasks/{task['id']}", headers=auth(member_user)).status_code == 403


@pytest.mark.integration
def test_status_and_checklist_updates_by_assignee(client, admin_user, member_user, other_user):
    task = create(
        client,
        admin_user,
        assignedTo=[member_user.id],
        todoChecklist=[{"title": "a", "completed": False}, {"title": "b", "completed": False}],
    )
    url = f"/api/tasks/{task['id']}"

    response = client.put(
        f"{url}/todo",
        json={"todoChecklist": [{"title": "a", "completed": True}, {"title": "b", "completed": False}]},
        headers=auth(member_user),
    )
    assert response.status_code == 200
    assert response.json()["task"]["progress"] == 50
    assert response.json()["task"]["assignedTo"][0]["name"] == member_user.name

    response = client.put(f"{url}/status", json={"status": "completed"}, headers=auth(member_user))
    body = response.json()["task"]
    assert body["progress"] == 100
    assert all(item["completed"] for item in body["todoChecklist"])

    assert client.put(f"{url}/status", json={"status": "pending"}, headers=auth(other_user)).status_code == 403
    assert client.put(f"{url}/status", json={}, headers=auth(member_user)).status_code == 400
    assert client.put(f"{url}/todo", json={"todoChecklist": "nope"}, headers=auth(member_user)).status_code == 400


@pytest.mark.integration
def test_update_and_delete_are_admin_only(client, admin_user, member_user):
    task = create(client, admin_user, assignedTo=[member_user.id])
    url = f"/api/tasks/{task['id']}"

    assert client.put(url, json={"title": "x"}, headers=auth(member_user)).status_code == 403
    assert client.delete(url, headers=auth(member_user)).status_code == 403

    response = client.put(url, json={"title": "Renamed", "assignedTo": "solo"}, headers=auth(admin_user))
    assert response.status_code == 400

    response = client.put(url, json={"title": "Renamed"}, headers=auth(admin_user))
    assert response.json()["task"]["title"] == "Renamed"

    assert client.delete(url, headers=auth(admin_user)).status_code == 200
    assert client.get(url, headers=auth(admin_user)).status_code == 404


@pytest.mark.integration
def test_dashboards(client, admin_user, member_user):
    create(client, admin_user, assignedTo=[member_user.id], priority="low")
    create(client, admin_user, priority="medium")

    assert client.get("/api/tasks/dashboard-data", headers=auth(member_user)).status_code == 403

    data = client.get("/api/tasks/dashboard-data", headers=auth(admin_user)).json()
    assert data["statistics"]["totalTasks"] == 2
    assert data["charts"]["taskDistribution"] == {"pending": 2, "in-progress": 0, "completed": 0, "All": 2}
    assert data["charts"]["taskPriorityLevels"] == {"low": 1, "medium": 1, "high": 0}
    assert len(data["recentTasks"]) == 2

    mine = client.get("/api/tasks/user-dashboard-data", headers=auth(member_user)).json()
    assert mine["statistics"]["totalTasks"] == 1
    assert mine["charts"]["taskPriorityLevels"]["low"] == 1


@pytest.mark.integration
def test_users_listing_with_counts(client, admin_user, member_user):
    create(client, admin_user, assignedTo=[member_user.id])

    assert client.get("/api/users", headers=auth(member_user)).status_code == 403
    users = client.get("/api/users", headers=auth(admin_user)).json()
    assert [user["email"] for user in users] == [member_user.email]
    assert users[0]["pendingTasks"] == 1
    assert "hashedPassword" not in users[0]

    assert client.get(f"/api/users/{member_user.id}", headers=auth(admin_user)).json()["name"] == member_user.name
    assert client.get("/api/users/missing", headers=auth(admin_user)).status_code == 404


@pytest.mark.integration
def test_register_login_and_profile(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Rae", "email": "rae@example.com", "password": "pw", "adminInviteToken": "invite-123"},
    )
    assert response.status_code == 201
    assert response.json()["role"] == "admin"

    member = client.post(
        "/api/auth/register", json={"name": "Sam", "email": "sam@example.com", "password": "pw"}
    ).json()
    assert member["role"] == "member"

    assert client.post("/api/auth/login", json={"email": "sam@example.com", "password": "bad"}).status_code == 401
    login = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "pw"}).json()
    headers = {"Authorization": f"Bearer {login['token']}"}

    updated = client.put("/api/auth/profile", json={"name": "Samuel", "email": ""}, headers=headers).json()
    assert updated["name"] == "Samuel"
    assert updated["email"] == "sam@example.com"
    assert client.get("/api/auth/profile", headers=headers).json()["name"] == "Samuel"


@pytest.mark.integration
def test_repository_failure_is_a_generic_server_error(client, admin_user):
    with patch("taskflow.services.repository.SqlTaskRepository.find_many", side_effect=RepositoryFailure("boom")):
        response = client.get("/api/tasks", headers=auth(admin_user))
    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}


@pytest.mark.integration
def test_auth_errors_use_message_body(client, member_user):
    response = client.post(
        "/api/auth/register", json={"name": "Max", "email": member_user.email, "password": "pw"}
    )
    assert response.status_code == 400
    assert response.json() == {"message": "User already exists"}

    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "pw"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}


@pytest.mark.integration
def test_profile_email_taken_by_another_user(client, member_user, other_user):
    response = client.put("/api/auth/profile", json={"email": other_user.email}, headers=auth(member_user))
    assert response.status_code == 400
    assert response.json() == {"message": "Email already in use"}

    # own email is not a conflict
    response = client.put("/api/auth/profile", json={"email": member_user.email}, headers=auth(member_user))
    assert response.status_code == 200
    assert response.json()["email"] == member_user.email


@pytest.mark.integration
def test_unexpected_error_is_a_json_server_error(session, admin_user):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app, raise_server_exceptions=False)
    try:
        with patch("taskflow.services.repository.SqlTaskRepository.find_many", side_effect=RuntimeError("boom")):
            response = client.get("/api/tasks", headers=auth(admin_user))
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}
