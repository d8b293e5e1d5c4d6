"""
Scriptly Backend — API Endpoint Tests
=======================================

What:  End-to-end flows through the FastAPI app (routing, auth
       dependencies, exception handlers, commit per request).
How:   HTTPX AsyncClient with ASGITransport; get_db_session is pointed at
       the per-test in-memory database (see conftest.py).

What we test:
    ✅ Chapter lead onboarding through to tutorial approval
    ✅ 401 codes: token_missing, token_invalid, user_not_found
    ✅ Malformed ids are a 400, role gates are a 403
    ✅ Vouching and event registration over HTTP
    ✅ Health endpoint and the X-Request-ID header
"""

import uuid

import pytest

from scriptly.models.enums import Role
from scriptly.services.security import create_access_token


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _register(client, name: str) -> dict:
    response = await client.post("/api/auth/register", json={
        "name": name,
        "email": f"{name.lower()}@example.com",
        "password": "secret123",
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestChapterLeadOnboarding:
    """End-to-end flows for chapter lead onboarding."""

    @pytest.mark.asyncio
    async def test_lead_assignment_to_tutorial_approval(self, api_client, seed_user):
        """A student made lead writes a tutorial that goes live after approval."""
        _, admin_token = await seed_user("Ada", role=Role.ADMIN)

        # Admin creates a chapter without a lead
        response = await api_client.post(
            "/api/chapters", json={"name": "Alpha", "description": "First"}, headers=_auth(admin_token)
        )
        assert response.status_code == 201
        chapter = response.json()["chapter"]
        assert chapter["chapterLead"] is None

        # Bob signs up as a student
        bob = await _register(api_client, "Bob")
        assert bob["user"]["role"] == "student"

        # Admin makes Bob the lead
        response = await api_client.put(
            f"/api/chapters/{chapter['id']}",
            json={"chapterLeadId": bob["user"]["id"]},
            headers=_auth(admin_token),
        )
        assert response.status_code == 200
        assert response.json()["chapter"]["chapterLead"]["id"] == bob["user"]["id"]

        # Bob's old token still works; his role is read fresh
        response = await api_client.get("/api/auth/profile", headers=_auth(bob["token"]))
        profile = response.json()
        assert profile["role"] == "chapter-lead"
        assert profile["chapter"]["id"] == chapter["id"]

        # Bob writes a tutorial; it waits for review
        response = await api_client.post(
            "/api/tutorials/categories", json={"name": "Python"}, headers=_auth(admin_token)
        )
        category_id = response.json()["category"]["id"]
        response = await api_client.post(
            "/api/tutorials",
            json={"title": "Async ORM", "content": "selectinload everywhere",
                  "categoryId": category_id, "keywords": "orm, async"},
            headers=_auth(bob["token"]),
        )
        assert response.status_code == 201
        tutorial = response.json()["tutorial"]
        assert tutorial["status"] == "pending"
        assert tutorial["keywords"] == ["orm", "async"]

        # Anonymous readers do not see it yet
        response = await api_client.get("/api/tutorials")
        assert response.json() == []

        response = await api_client.put(
            f"/api/tutorials/{tutorial['id']}/approve", headers=_auth(admin_token)
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Tutorial approved successfully"
        assert response.json()["tutorial"]["status"] == "approved"

        response = await api_client.put(
            f"/api/tutorials/{tutorial['id']}/approve", headers=_auth(admin_token)
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"
        assert "already approved" in response.json()["message"]

        response = await api_client.get("/api/tutorials")
        assert [t["id"] for t in response.json()] == [tutorial["id"]]

    @pytest.mark.asyncio
    async def test_lead_creates_event_only_in_own_chapter(self, api_client, seed_user):
        """A lead creates events only in their chapter; users register once."""
        _, admin_token = await seed_user("Ada", role=Role.ADMIN)
        lena, lena_token = await seed_user("Lena")
        alpha = (await api_client.post(
            "/api/chapters", json={"name": "Alpha", "chapterLeadId": str(lena.id)}, headers=_auth(admin_token)
        )).json()["chapter"]
        beta = (await api_client.post(
            "/api/chapters", json={"name": "Beta"}, headers=_auth(admin_token)
        )).json()["chapter"]

        event = {"name": "Kickoff", "description": "Hello", "date": "2026-11-01T18:00:00Z",
                 "location": "Room 1"}
        response = await api_client.post(
            "/api/events", json={**event, "chapterId": alpha["id"]}, headers=_auth(lena_token)
        )
        assert response.status_code == 201
        event_id = response.json()["event"]["id"]

        response = await api_client.post(
            "/api/events", json={**event, "chapterId": beta["id"]}, headers=_auth(lena_token)
        )
        assert response.status_code == 403

        # Anyone signed in may register
        sam = await _register(api_client, "Sam")
        response = await api_client.post(f"/api/events/{event_id}/register", headers=_auth(sam["token"]))
        assert response.status_code == 200
        response = await api_client.post(f"/api/events/{event_id}/register", headers=_auth(sam["token"]))
        assert response.status_code == 409

        response = await api_client.get(
            f"/api/users/{sam['user']['id']}/registered-events", headers=_auth(sam["token"])
        )
        assert [e["id"] for e in response.json()] == [event_id]


class TestVouchingOverHttp:
    """Vouching through the users API."""

    @pytest.mark.asyncio
    async def test_admin_vouch_then_duplicate(self, api_client, seed_user):
        """A second vouch is a 409 and the count stays at one."""
        admin, admin_token = await seed_user("Ada", role=Role.ADMIN)
        sam = await _register(api_client, "Sam")

        response = await api_client.post(f"/api/users/{sam['user']['id']}/vouch", headers=_auth(admin_token))
        assert response.status_code == 200
        assert response.json()["user"]["vouchCount"] == 1

        response = await api_client.post(f"/api/users/{sam['user']['id']}/vouch", headers=_auth(admin_token))
        assert response.status_code == 409

        response = await api_client.get(f"/api/users/{sam['user']['id']}", headers=_auth(sam["token"]))
        assert response.json()["vouchedBy"] == [str(admin.id)]
        assert response.json()["vouchCount"] == 1

    @pytest.mark.asyncio
    async def test_self_vouch_is_400(self, api_client, seed_user):
        """Vouching for yourself is a 400."""
        admin, admin_token = await seed_user("Ada", role=Role.ADMIN)
        response = await api_client.post(f"/api/users/{admin.id}/vouch", headers=_auth(admin_token))
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot vouch for yourself"


class TestAuthErrors:
    """Authentication error codes and auth endpoints."""

    @pytest.mark.asyncio
    async def test_missing_token(self, api_client):
        """No token gives 401 token_missing."""
        response = await api_client.get("/api/auth/profile")
        assert response.status_code == 401
        assert response.json()["error"] == "token_missing"

    @pytest.mark.asyncio
    async def test_invalid_token(self, api_client):
        """A bad token gives 401 token_invalid."""
        response = await api_client.get("/api/auth/profile", headers=_auth("garbage"))
        assert response.status_code == 401
        assert response.json()["error"] == "token_invalid"

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, api_client):
        """A token for a missing user gives 401 user_not_found."""
        token = create_access_token(uuid.uuid4(), Role.STUDENT)
        response = await api_client.get("/api/auth/profile", headers=_auth(token))
        assert response.status_code == 401
        assert response.json()["error"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_login_round_trip(self, api_client):
        """Login ignores email case and rejects a wrong password."""
        await _register(api_client, "Sam")

        response = await api_client.post(
            "/api/auth/login", json={"email": "SAM@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        assert response.json()["token"]

        response = await api_client.post(
            "/api/auth/login", json={"email": "sam@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, api_client):
        """Registering an email twice is a 409."""
        await _register(api_client, "Sam")
        response = await api_client.post("/api/auth/register", json={
            "name": "Sam again", "email": "sam@example.com", "password": "secret123",
        })
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_short_password_is_400(self, api_client):
        """A short password is a 400 validation_error."""
        response = await api_client.post("/api/auth/register", json={
            "name": "Sam", "email": "sam@example.com", "password": "123",
        })
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_password_change(self, api_client):
        """Changing the password needs the old one and enables the new one."""
        sam = await _register(api_client, "Sam")
        url = f"/api/users/{sam['user']['id']}/password"

        response = await api_client.put(
            url, json={"oldPassword": "nope-nope", "newPassword": "another1"}, headers=_auth(sam["token"])
        )
        assert response.status_code == 401

        response = await api_client.put(
            url, json={"oldPassword": "secret123", "newPassword": "another1"}, headers=_auth(sam["token"])
        )
        assert response.status_code == 200
        response = await api_client.post(
            "/api/auth/login", json={"email": "sam@example.com", "password": "another1"}
        )
        assert response.status_code == 200


class TestRequestErrors:
    """Error mapping for malformed and refused requests."""

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, api_client, seed_user):
        """A malformed id is a 400 validation_error."""
        _, token = await seed_user("Sam")
        response = await api_client.get("/api/users/not-a-uuid", headers=_auth(token))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_role_gate_is_403(self, api_client, seed_user):
        """A role-gated route refuses other roles with a 403."""
        _, token = await seed_user("Sam")
        response = await api_client.post("/api/chapters", json={"name": "Alpha"}, headers=_auth(token))
        assert response.status_code == 403
        assert response.json()["message"] == "Role student is not authorized to access this route"

    @pytest.mark.asyncio
    async def test_unknown_chapter_is_404(self, api_client):
        """An unknown chapter id is a 404 not_found."""
        response = await api_client.get(f"/api/chapters/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_failed_request_is_rolled_back(self, api_client, seed_user):
        """A request that fails half way leaves nothing behind."""
        _, admin_token = await seed_user("Ada", role=Role.ADMIN)
        response = await api_client.post(
            "/api/chapters",
            json={"name": "Alpha", "chapterLeadId": str(uuid.uuid4())},
            headers=_auth(admin_token),
        )
        assert response.status_code == 404

        response = await api_client.get("/api/chapters")
        assert response.json() == []


class TestHealth:
    """Health endpoint."""

    @pytest.mark.asyncio
    async def test_health_and_request_id(self, api_client):
        """Health reports healthy and echoes X-Request-ID."""
        response = await api_client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"] == "trace-123"
