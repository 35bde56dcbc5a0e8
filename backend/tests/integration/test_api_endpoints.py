"""
Integration tests for the EchoWrite API endpoints.

Tests the full request/response cycle against in-memory repositories.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings, get_settings
from app.domain.subscription import UNLIMITED
from tests.fakes import bearer


NEXT_MONTH = datetime.now(timezone.utc) + timedelta(days=30)


def session_headers(session) -> dict:
    return {"X-Session-Id": session.id}


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Root endpoint should return welcome message."""
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_health_endpoint(self, client: TestClient):
        """Health endpoint should return healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "echowrite"}


class TestSessionEndpoints:

    def test_create_and_read_session(self, api: TestClient):
        created = api.post("/api/sessions")

        assert created.status_code == 201
        session_id = created.json()["data"]["session_id"]
        assert created.json()["data"]["remaining_conversations"] == 3

        fetched = api.get(f"/api/sessions/{session_id}")
        assert fetched.json()["data"]["is_expired"] is False

    def test_unknown_session(self, api: TestClient):
        response = api.get("/api/sessions/nope")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Session not found", "details": {}},
        }

    def test_claim_requires_login(self, api: TestClient, anonymous_session):
        response = api.post(f"/api/sessions/{anonymous_session.id}/claim")
        assert response.status_code == 401

    def test_claim_moves_conversations(self, api: TestClient, store, user, anonymous_session):
        anonymous_session.conversations_used = 2
        store.conversations.add(session_id=anonymous_session.id, is_anonymous=True)

        response = api.post(f"/api/sessions/{anonymous_session.id}/claim", headers=bearer(user))

        assert response.status_code == 200
        assert response.json()["data"]["conversations_transferred"] == 2
        assert store.conversations.conversations and all(
            c.user_id == user.id for c in store.conversations.conversations.values()
        )


class TestSendMessage:

    def _conversation(self, api, headers) -> str:
        response = api.post("/api/conversations", json={}, headers=headers)
        assert response.status_code == 201
        return response.json()["data"]["id"]

    def test_requires_identity(self, api: TestClient):
        response = api.post("/api/chat/conversations/abc/messages", json={"content": "Hi"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication required. Provide JWT token or session ID."

    def test_validates_content(self, api: TestClient, user):
        response = api.post("/api/chat/conversations/abc/messages", json={"content": ""}, headers=bearer(user))
        assert response.status_code == 422

    def test_generates_and_reports_quota(self, api: TestClient, user, engine):
        headers = bearer(user)
        conversation_id = self._conversation(api, headers)

        response = api.post(
            f"/api/chat/conversations/{conversation_id}/messages",
            json={"content": "Announce our new feature", "language": "german"},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["assistant_message"]["content"] == "Final post"
        assert len(body["data"]["assistant_message"]["iterations"]) == 3
        assert body["data"]["quota_remaining"]["type"] == "free"
        assert body["data"]["quota_remaining"]["remaining"] == 2
        assert engine.calls == [("Announce our new feature", "german")]

    def test_fourth_anonymous_generation_is_refused(self, api: TestClient, anonymous_session, engine):
        headers = session_headers(anonymous_session)
        conversation_id = self._conversation(api, headers)
        url = f"/api/chat/conversations/{conversation_id}/messages"

        for _ in range(3):
            assert api.post(url, json={"content": "Hi"}, headers=headers).status_code == 201

        response = api.post(url, json={"content": "Hi"}, headers=headers)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "QUOTA_EXCEEDED"
        assert error["details"]["conversations_used"] == 3
        assert error["details"]["conversations_limit"] == 3
        assert len(engine.calls) == 3

    def test_unlimited_subscriber_after_free_quota(self, api: TestClient, store, user):
        store.users.users[user.id].free_quota_used = 3
        unlimited = store.subscriptions.add(user_id=user.id, max_messages=UNLIMITED, end_date=NEXT_MONTH)
        headers = bearer(user)
        conversation_id = self._conversation(api, headers)

        response = api.post(
            f"/api/chat/conversations/{conversation_id}/messages", json={"content": "Hi"}, headers=headers
        )

        assert response.status_code == 201
        assert response.json()["data"]["quota_remaining"]["remaining"] == UNLIMITED
        assert store.subscriptions.subscriptions[unlimited.id].used_messages == 1

    def test_other_users_conversation(self, api: TestClient, store, user):
        other = store.conversations.add(user_id="someone-else")

        response = api.post(
            f"/api/chat/conversations/{other.id}/messages", json={"content": "Hi"}, headers=bearer(user)
        )

        assert response.status_code == 403

    def test_direct_message_route(self, api: TestClient, user):
        headers = bearer(user)
        conversation_id = self._conversation(api, headers)

        response = api.post(
            "/api/chat/messages", json={"conversation_id": conversation_id, "content": "Hi"}, headers=headers
        )

        assert response.status_code == 201

    def test_message_history(self, api: TestClient, user):
        headers = bearer(user)
        conversation_id = self._conversation(api, headers)
        api.post(f"/api/chat/conversations/{conversation_id}/messages", json={"content": "Hi"}, headers=headers)

        response = api.get(f"/api/chat/conversations/{conversation_id}/messages", headers=headers)

        assert [m["role"] for m in response.json()["data"]] == ["user", "assistant"]


class TestUsage:

    def test_anonymous_usage(self, api: TestClient, anonymous_session):
        response = api.get("/api/chat/usage", headers=session_headers(anonymous_session))

        data = response.json()["data"]
        assert data["user_type"] == "anonymous"
        assert data["session_quota"] == {"used": 0, "limit": 3, "remaining": 3}

    def test_authenticated_usage(self, api: TestClient, user):
        response = api.get("/api/chat/usage", headers=bearer(user))

        data = response.json()["data"]
        assert data["user_type"] == "authenticated"
        assert data["free_quota"]["remaining"] == 3
        assert data["total_conversations"] == 0

    def test_quota_alias(self, api: TestClient, user):
        assert api.get("/api/chat/quota", headers=bearer(user)).status_code == 200


class TestConversationEndpoints:

    def test_list_only_own(self, api: TestClient, store, user):
        store.conversations.add(user_id=user.id, title="Mine")
        store.conversations.add(user_id="someone-else", title="Theirs")

        response = api.get("/api/conversations", headers=bearer(user))

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["conversations"][0]["title"] == "Mine"

    def test_rename_and_delete(self, api: TestClient, store, user):
        headers = bearer(user)
        conversation = store.conversations.add(user_id=user.id)

        renamed = api.patch(f"/api/conversations/{conversation.id}", json={"title": "Q3 launch"}, headers=headers)
        assert renamed.json()["data"]["title"] == "Q3 launch"

        deleted = api.delete(f"/api/conversations/{conversation.id}", headers=headers)
        assert deleted.status_code == 200
        assert conversation.id not in store.conversations.conversations


class TestAdminEndpoints:

    @pytest.fixture
    def admin_settings(self, app, api):
        settings = Settings(_env_file=None, admin_api_key="admin-secret")
        app.dependency_overrides[get_settings] = lambda: settings
        return settings

    def test_rejects_wrong_key(self, api: TestClient, admin_settings):
        response = api.get("/api/admin/plans", headers={"X-Admin-Key": "nope"})
        assert response.status_code == 403

    def test_plan_catalog(self, api: TestClient, admin_settings):
        headers = {"X-Admin-Key": "admin-secret"}
        plan = {"tier": "starter", "name": "Starter", "max_messages": 50, "monthly_price": 20, "yearly_price": 192}

        created = api.post("/api/admin/plans", json=plan, headers=headers)
        duplicate = api.post("/api/admin/plans", json=plan, headers=headers)
        public = api.get("/api/subscriptions/plans")

        assert created.status_code == 201
        assert duplicate.status_code == 400
        assert [p["tier"] for p in public.json()["data"]] == ["starter"]

    def test_run_job(self, api: TestClient, admin_settings):
        headers = {"X-Admin-Key": "admin-secret"}

        assert api.post("/api/admin/jobs/quota-reset", headers=headers).json()["data"] == {"users_reset": 0}
        assert api.post("/api/admin/jobs/defrag", headers=headers).status_code == 404
