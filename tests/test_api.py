"""
Serenity Backend — API Integration Tests
========================================

What:  Drives the FastAPI app over HTTPX's ASGITransport against an
       in-memory SQLite database.

What we test:
    ✅ Register / login / token handling
    ✅ Error bodies carry {error, message, details, request_id}
    ✅ Session lifecycle over HTTP, including 400 session_error and 403
    ✅ Health, export and leaderboard endpoints
    ✅ Every application exception has a registered handler
"""

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["cache"] == "disabled"
        assert body["status"] in ("healthy", "degraded")
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_client_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestAuth:
    @pytest.mark.asyncio
    async def test_register_and_login(self, test_client, register):
        headers, user = await register("alice")
        assert user["username"] == "alice"
        assert "password_hash" not in user

        response = await test_client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "password123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]

        me = await test_client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, test_client, register):
        await register("alice")
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client, register):
        await register("alice")
        response = await test_client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "authentication_error"
        assert body["message"] == "Invalid credentials"
        assert set(body) == {"error", "message", "details", "request_id"}

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/meditation-sessions")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get("/api/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_body_is_422(self, test_client):
        response = await test_client.post("/api/auth/register", json={"username": "al"})
        assert response.status_code == 422


class TestMeditationSessionsApi:
    @pytest.mark.asyncio
    async def test_lifecycle(self, test_client, register):
        headers, _ = await register("alice")

        created = await test_client.post(
            "/api/meditation-sessions",
            json={"title": "Morning", "duration": 10, "mood_before": "anxious"},
            headers=headers,
        )
        assert created.status_code == 201
        session_id = created.json()["id"]

        second = await test_client.post(
            "/api/meditation-sessions", json={"title": "Again", "duration": 10}, headers=headers
        )
        assert second.status_code == 400
        assert second.json()["message"] == "Active session already exists"

        completed = await test_client.post(
            f"/api/meditation-sessions/{session_id}/complete",
            json={"duration_completed": 10, "mood_after": "calm"},
            headers=headers,
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        again = await test_client.post(f"/api/meditation-sessions/{session_id}/complete", headers=headers)
        assert again.status_code == 400
        assert again.json()["error"] == "session_error"

        me = await test_client.get("/api/users/me", headers=headers)
        assert me.json()["current_streak"] == 1

    @pytest.mark.asyncio
    async def test_other_users_session_forbidden(self, test_client, register):
        alice, _ = await register("alice")
        bob, _ = await register("bob")

        created = await test_client.post(
            "/api/meditation-sessions", json={"title": "Mine", "duration": 5}, headers=alice
        )
        response = await test_client.get(f"/api/meditation-sessions/{created.json()['id']}", headers=bob)
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_unknown_session(self, test_client, register):
        headers, _ = await register("alice")
        response = await test_client.get(
            "/api/meditation-sessions/00000000-0000-0000-0000-000000000000", headers=headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestExportAndLeaderboardApi:
    @pytest.mark.asyncio
    async def test_csv_export(self, test_client, register):
        headers, user = await register("alice")
        response = await test_client.get("/api/export/meditations", params={"format": "csv"}, headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == f'attachment; filename="meditations-{user["id"]}.csv"'
        assert response.text.startswith("start_time,title,")

    @pytest.mark.asyncio
    async def test_json_export(self, test_client, register):
        headers, _ = await register("alice")
        response = await test_client.get("/api/export/user-data", headers=headers)
        assert response.status_code == 200
        assert response.json()["profile"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_leaderboard(self, test_client, register):
        alice, _ = await register("alice")
        created = await test_client.post(
            "/api/meditation-sessions", json={"title": "Sit", "duration": 15}, headers=alice
        )
        await test_client.post(
            f"/api/meditation-sessions/{created.json()['id']}/complete",
            json={"duration_completed": 15},
            headers=alice,
        )

        response = await test_client.get("/api/leaderboard", params={"category": "meditation"}, headers=alice)
        assert response.status_code == 200
        board = response.json()
        assert board[0]["username"] == "alice"
        assert board[0]["rank"] == 1
        assert board[0]["points"] > 0

    @pytest.mark.asyncio
    async def test_invalid_period_is_422(self, test_client, register):
        headers, _ = await register("alice")
        response = await test_client.get("/api/leaderboard", params={"period": "yearly"}, headers=headers)
        assert response.status_code == 422


def _subclasses(cls):
    for sub in cls.__subclasses__():
        yield sub
        yield from _subclasses(sub)


class TestErrorHandlers:
    def test_every_application_error_has_a_handler(self):
        from serenity.exceptions import SerenityError
        from serenity.main import create_app

        app = create_app()
        missing = [cls.__name__ for cls in _subclasses(SerenityError) if cls not in app.exception_handlers]
        assert missing == []
