"""
Route tests against in-memory collaborators.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from liqa.auth.verify import auth_dependency
from liqa.main import app
from liqa.routes.dependencies import get_email_service, get_storage
from tests.fakes import NOW

client = TestClient(app)


@pytest.fixture(autouse=True)
def wired(storage, fake_email):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: fake_email
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def as_user(apply_auth_override, storage):
    storage.add_user(1, name="Ana", preferences={"interests": ["housing"]})
    apply_auth_override(app)


@pytest.fixture
def as_admin(apply_auth_override, storage):
    storage.add_user(99, name="Admin", is_admin=True)
    apply_auth_override(app, admin=True)


def _actions(storage):
    return [entry.action for entry in storage.log_entries]


def test_requires_bearer_token():
    response = client.get("/meetings")

    assert response.status_code in (401, 403)


def test_list_and_get_meetings(as_user, storage):
    storage.add_meeting(10, title="Budget")

    assert [m["id"] for m in client.get("/meetings").json()] == [10]
    assert client.get("/meetings/10").json()["title"] == "Budget"
    assert client.get("/meetings/11").status_code == 404


def test_register_for_meeting(as_user, storage, fake_email):
    storage.add_meeting(10)

    response = client.post("/meetings/10/register", headers={"User-Agent": "pytest-agent"})

    assert response.status_code == 201
    assert response.json()["meeting_id"] == 10
    assert fake_email.confirmations == [("user1@example.com", 10)]
    assert _actions(storage) == ["REGISTRATION_CREATE"]
    assert storage.log_entries[0].user_agent == "pytest-agent"
    assert storage.log_entries[0].ip_address is not None


def test_register_twice_is_rejected(as_user, storage):
    storage.add_meeting(10)
    storage.add_registration(1, 10)

    response = client.post("/meetings/10/register")

    assert response.status_code == 400
    assert response.json()["detail"] == "Already registered"


def test_register_for_missing_meeting(as_user):
    assert client.post("/meetings/404/register").status_code == 404


def test_register_for_past_meeting_is_rejected(as_user, storage):
    storage.add_meeting(
        10, is_upcoming=False, video_url="https://videos.example.com/10", date=NOW - timedelta(days=1)
    )

    assert client.post("/meetings/10/register").status_code == 400


def test_register_succeeds_when_confirmation_email_fails(as_user, storage, fake_email):
    fake_email.failing_recipients.add("user1@example.com")
    storage.add_meeting(10)

    assert client.post("/meetings/10/register").status_code == 201


def test_register_succeeds_when_activity_log_fails(as_user, storage):
    storage.add_meeting(10)
    storage.failing.add("insert_log_entry")

    assert client.post("/meetings/10/register").status_code == 201


def test_annotations(as_user, storage):
    storage.add_meeting(10)

    created = client.post("/meetings/10/annotations", json={"timestamp": 95, "text": "Key point"})
    client.post("/meetings/10/annotations", json={"timestamp": 12, "text": "Intro"})

    assert created.status_code == 201
    listed = client.get("/meetings/10/annotations").json()
    assert [a["timestamp"] for a in listed] == [12, 95]
    assert _actions(storage) == ["ANNOTATION_CREATE", "ANNOTATION_CREATE"]


def test_recommendations(as_user, storage):
    storage.add_meeting(10, categories=["housing"], date=NOW + timedelta(days=3650))

    response = client.get("/recommendations")

    assert response.status_code == 200
    body = response.json()
    assert body[0]["meeting"]["id"] == 10
    assert body[0]["score"] == 2
    assert body[0]["reasons"] == ["Matches 1 of your interests"]


def test_recommendations_for_unknown_user(apply_auth_override):
    apply_auth_override(app)

    assert client.get("/recommendations").status_code == 404


def test_recommendations_storage_failure(as_user, storage):
    storage.failing.add("get_meetings")

    response = client.get("/recommendations")

    assert response.status_code == 500
    assert response.json()["detail"] == "Unable to compute recommendations"


def test_update_preferences(as_user, storage):
    response = client.put(
        "/me/preferences",
        json={"interests": ["energy"], "preferred_days": ["Friday"]},
    )

    assert response.status_code == 200
    assert response.json()["preferences"]["preferred_days"] == ["friday"]
    assert _actions(storage) == ["USER_UPDATE"]
    assert storage.log_entries[0].metadata.previous_state == {
        "preferences": {"interests": ["housing"], "preferred_days": [], "preferred_time_of_day": []}
    }


def test_delete_account(as_user, storage):
    assert client.delete("/account").status_code == 204
    assert 1 not in storage.users
    assert _actions(storage) == ["USER_DELETE"]


def test_admin_routes_reject_non_admin(as_user):
    assert client.get("/admin/users").status_code == 403
    assert client.post(
        "/meetings", json={"title": "T", "description": "D", "date": NOW.isoformat()}
    ).status_code == 403


def test_create_meeting_announces_and_logs(as_admin, storage, fake_email):
    storage.add_user(1)

    response = client.post(
        "/meetings",
        json={
            "title": "Water strategy",
            "description": "Planning session",
            "date": (NOW + timedelta(days=3)).isoformat(),
            "categories": ["water"],
        },
    )

    assert response.status_code == 201
    meeting_id = response.json()["id"]
    assert fake_email.announcements == [
        (["user99@example.com", "user1@example.com"], meeting_id)
    ]
    assert _actions(storage) == ["MEETING_CREATE"]
    assert storage.log_entries[0].metadata.new_state["title"] == "Water strategy"


def test_create_past_meeting_without_video_is_rejected(as_admin):
    response = client.post(
        "/meetings",
        json={
            "title": "Recap",
            "description": "Done",
            "date": (NOW - timedelta(days=3)).isoformat(),
            "is_upcoming": False,
        },
    )

    assert response.status_code == 422


def test_update_meeting_logs_previous_and_new_state(as_admin, storage):
    storage.add_meeting(10, title="Old title")

    response = client.patch("/meetings/10", json={"title": "New title"})

    assert response.status_code == 200
    entry = storage.log_entries[0]
    assert entry.action == "MEETING_UPDATE"
    assert entry.metadata.previous_state["title"] == "Old title"
    assert entry.metadata.new_state["title"] == "New title"


def test_update_meeting_to_past_requires_video(as_admin, storage):
    storage.add_meeting(10)

    assert client.patch("/meetings/10", json={"is_upcoming": False}).status_code == 400


def test_update_meeting_rejects_null_fields(as_admin, storage):
    storage.add_meeting(10, title="Budget", categories=["finance"])

    response = client.patch("/meetings/10", json={"categories": None, "title": None})

    assert response.status_code == 422
    assert storage.meetings[10].title == "Budget"
    assert storage.meetings[10].categories == ["finance"]
    assert _actions(storage) == []


def test_delete_meeting(as_admin, storage):
    storage.add_meeting(10)

    assert client.delete("/meetings/10").status_code == 204
    assert client.delete("/meetings/10").status_code == 404
    assert _actions(storage) == ["MEETING_DELETE"]


def test_admin_role_update_and_delete(as_admin, storage):
    storage.add_user(5)

    response = client.patch("/admin/users/5/role", json={"is_admin": True})
    assert response.status_code == 200
    assert response.json()["is_admin"] is True

    assert client.delete("/admin/users/5").status_code == 204
    assert client.delete("/admin/users/5").status_code == 404
    assert _actions(storage) == ["ADMIN_ACTION", "USER_DELETE"]


def test_admin_registrations_are_joined(as_admin, storage):
    storage.add_user(1)
    storage.add_meeting(10, title="Budget")
    storage.add_registration(1, 10)

    body = client.get("/admin/registrations").json()

    assert body[0]["user"]["id"] == 1
    assert body[0]["meeting"]["title"] == "Budget"


def test_admin_activity_log_filters(as_admin, storage):
    storage.add_meeting(10)
    client.delete("/meetings/10")
    client.patch("/admin/users/99/role", json={"is_admin": True})

    response = client.get("/admin/activity-logs", params={"entity_type": "MEETING"})

    assert response.status_code == 200
    assert [e["action"] for e in response.json()] == ["MEETING_DELETE"]
    assert client.get("/admin/activity-logs", params={"action": "BOGUS"}).status_code == 422


def test_invalid_token_is_rejected():
    app.dependency_overrides.pop(auth_dependency, None)

    response = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code in (401, 503)
