"""HTTP surface: auth, role checks, workflow endpoints and error bodies."""

import pytest

from src.simflow.models import RequestStatus
from tests.factories import DEFAULT_TEST_PASSWORD

pytestmark = pytest.mark.integration

API = "/api/v1"

NEW_REQUEST = {
    "title": "Crash test simulation",
    "description": "Frontal impact simulation at 56 km/h for the new chassis.",
}


async def create_request(client, headers) -> dict:
    response = await client.post(f"{API}/requests", json=NEW_REQUEST, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestAuth:
    async def test_login_and_me(self, client, requester):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": requester.email, "password": DEFAULT_TEST_PASSWORD},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["email"] == requester.email
        assert me.json()["role"] == "End-User"

    async def test_wrong_password(self, client, requester):
        response = await client.post(
            f"{API}/auth/login", json={"email": requester.email, "password": "not-it"}
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_missing_token(self, client):
        response = await client.get(f"{API}/requests")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "HTTPException"
        assert body["request_id"] == response.headers["X-Request-ID"]

    async def test_admin_only_routes(self, client, engineer, admin, auth_headers):
        denied = await client.get(f"{API}/users", headers=auth_headers(engineer))
        allowed = await client.get(f"{API}/users", headers=auth_headers(admin))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert {user["id"] for user in allowed.json()["items"]} >= {str(admin.id)}


class TestRequestFlow:
    async def test_happy_path_through_endpoints(
        self, client, auth_headers, manager, engineer, requester, project
    ):
        created = await create_request(client, auth_headers(requester))
        assert created["status"] == RequestStatus.SUBMITTED.value
        assert created["version"] == 1
        request_url = f"{API}/requests/{created['id']}"

        reviewed = await client.post(
            f"{request_url}/actions/start_review",
            json={"expected_version": 1},
            headers=auth_headers(manager),
        )
        assert reviewed.status_code == 200, reviewed.text
        assert "assign" in reviewed.json()["available_actions"]

        assigned = await client.post(
            f"{request_url}/assign",
            json={
                "engineer_id": str(engineer.id),
                "estimated_hours": 30,
                "project_id": str(project.id),
            },
            headers=auth_headers(manager),
        )
        assert assigned.status_code == 200, assigned.text
        assert assigned.json()["status"] == RequestStatus.ENGINEERING_REVIEW.value

        accepted = await client.post(
            f"{API}/requests/{created['id']}/transition",
            json={"target_status": RequestStatus.IN_PROGRESS.value},
            headers=auth_headers(engineer),
        )
        assert accepted.status_code == 200, accepted.text
        assert accepted.json()["status"] == RequestStatus.IN_PROGRESS.value
        assert accepted.json()["version"] == 4

        project_view = await client.get(
            f"{API}/projects/{project.id}", headers=auth_headers(manager)
        )
        assert project_view.json()["used_hours"] == 30
        assert project_view.json()["available_hours"] == 70

    async def test_budget_error_body(
        self, client, auth_headers, manager, engineer, requester, project
    ):
        created = await create_request(client, auth_headers(requester))
        request_url = f"{API}/requests/{created['id']}"
        await client.post(f"{request_url}/actions/start_review", headers=auth_headers(manager))

        response = await client.post(
            f"{request_url}/assign",
            json={
                "engineer_id": str(engineer.id),
                "estimated_hours": 500,
                "project_id": str(project.id),
            },
            headers=auth_headers(manager),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "InsufficientBudget"
        assert body["available"] == 100
        assert body["requested"] == 500
        assert body["request_id"] == response.headers["X-Request-ID"]

    async def test_forbidden_then_conflict_then_invalid(
        self, client, auth_headers, manager, engineer, requester
    ):
        created = await create_request(client, auth_headers(requester))
        request_url = f"{API}/requests/{created['id']}"

        forbidden = await client.post(
            f"{request_url}/actions/complete_work", headers=auth_headers(engineer)
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "Forbidden"

        stale = await client.post(
            f"{request_url}/actions/start_review",
            json={"expected_version": 7},
            headers=auth_headers(manager),
        )
        assert stale.status_code == 409
        assert stale.json()["error"] == "Conflict"
        assert stale.json()["actual_version"] == 1

        invalid = await client.post(
            f"{request_url}/actions/approve_revision", headers=auth_headers(manager)
        )
        assert invalid.status_code == 409
        assert invalid.json()["error"] == "InvalidTransition"
        assert invalid.json()["current"] == RequestStatus.SUBMITTED.value

    async def test_unknown_request(self, client, auth_headers, manager, project):
        # A project id is a valid UUID that is not a request
        response = await client.get(
            f"{API}/requests/{project.id}", headers=auth_headers(manager)
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_end_user_sees_only_own_requests(
        self, client, auth_headers, requester, admin
    ):
        await create_request(client, auth_headers(requester))
        await create_request(client, auth_headers(admin))

        mine = await client.get(f"{API}/requests", headers=auth_headers(requester))
        everything = await client.get(f"{API}/requests", headers=auth_headers(admin))

        assert len(mine.json()["items"]) == 1
        assert len(everything.json()["items"]) == 2


class TestProjectEndpoints:
    async def test_reason_gate(self, client, auth_headers, manager, project):
        response = await client.post(
            f"{API}/projects/{project.id}/transition",
            json={"status": "On Hold", "reason": "  "},
            headers=auth_headers(manager),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "ReasonRequired"

    async def test_transition_returns_next_states(self, client, auth_headers, manager, project):
        response = await client.post(
            f"{API}/projects/{project.id}/transition",
            json={"status": "On Hold", "reason": "Client budget freeze"},
            headers=auth_headers(manager),
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["project"]["status"] == "On Hold"
        assert set(body["valid_next_states"]) == {"Active", "Suspended", "Cancelled", "Archived"}

        history = await client.get(
            f"{API}/projects/{project.id}/history", headers=auth_headers(manager)
        )
        assert history.json()[0]["reason"] == "Client budget freeze"


class TestNotificationsAndAudit:
    async def test_notification_center(self, client, auth_headers, manager, requester):
        created = await create_request(client, auth_headers(requester))
        await client.post(
            f"{API}/requests/{created['id']}/actions/start_review",
            headers=auth_headers(manager),
        )

        count = await client.get(
            f"{API}/notifications/unread-count", headers=auth_headers(requester)
        )
        assert count.json() == {"unread": 1}

        marked = await client.post(
            f"{API}/notifications/read-all", headers=auth_headers(requester)
        )
        assert marked.json() == {"updated": 1}

        count = await client.get(
            f"{API}/notifications/unread-count", headers=auth_headers(requester)
        )
        assert count.json() == {"unread": 0}

    async def test_audit_trail(self, client, auth_headers, admin, requester):
        created = await create_request(client, auth_headers(requester))

        response = await client.get(
            f"{API}/audit/logs",
            params={"entity_type": "request", "entity_id": created["id"]},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        [entry] = response.json()["items"]
        assert entry["action"] == "request.create"
        assert entry["actor_id"] == str(requester.id)
        assert entry["status"] == "success"
        assert entry["request_id"]

    async def test_audit_is_admin_only(self, client, auth_headers, manager):
        response = await client.get(f"{API}/audit/logs", headers=auth_headers(manager))

        assert response.status_code == 403
