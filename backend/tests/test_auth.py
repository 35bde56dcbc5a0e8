"""
Integration Tests for Authentication

Verifies that the main application correctly integrates:
- Registration, email verification and login
- New-device verification
- Protected route denial (401) and access (200) with a valid token
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.api.dependencies import get_email_service
from app.domain.auth import OtpPurpose
from app.infrastructure.exceptions import EmailDeliveryError
from app.infrastructure.services.email_service import EmailService
from tests.fakes import bearer


DEVICE = {"device_id": "laptop-1", "user_agent": "Mozilla/5.0 (Macintosh) Chrome/120.0"}


@pytest.fixture
def no_email(app, api):
    """Development mode: codes are logged instead of mailed."""
    app.dependency_overrides[get_email_service] = lambda: EmailService(host="localhost")


@pytest.fixture
def mailer(app, api):
    mock = MagicMock(spec=EmailService)
    mock.is_configured = True
    mock.send_email_verification = AsyncMock()
    mock.send_new_device_login = AsyncMock()
    mock.send_password_reset = AsyncMock()
    app.dependency_overrides[get_email_service] = lambda: mock
    return mock


def register(api, email="new@example.com", password="secret123", **extra):
    return api.post("/api/auth/register", json={"email": email, "password": password, "name": "New", **extra})


class TestRegistration:

    def test_register_then_verify(self, api, store, no_email):
        response = register(api)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["requires_email_verification"] is True
        assert data["token"] is None
        assert "password_hash" not in data["user"]

        user_id = data["user"]["id"]
        code = store.otps.latest(user_id, OtpPurpose.EMAIL_VERIFICATION).otp
        verified = api.post("/api/auth/verify-email", json={"user_id": user_id, "otp": code})

        assert verified.status_code == 200
        assert verified.json()["data"]["token"]
        assert store.users.users[user_id].is_email_verified is True

    def test_duplicate_email(self, api, no_email):
        register(api)

        response = register(api, email="NEW@example.com")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_wrong_code(self, api, no_email):
        user_id = register(api).json()["data"]["user"]["id"]

        response = api.post("/api/auth/verify-email", json={"user_id": user_id, "otp": "000000"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["reason"] == "invalid"

    def test_undeliverable_code_rolls_back(self, api, store, mailer):
        mailer.send_email_verification.side_effect = EmailDeliveryError("SMTP down")

        response = register(api)

        assert response.status_code == 400
        assert store.users.users == {}

    def test_code_is_mailed(self, api, mailer):
        assert register(api).status_code == 201
        assert mailer.send_email_verification.await_count == 1


class TestLogin:

    def test_login_returns_token(self, api, no_email):
        register(api)

        response = api.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["data"]["token"]

    def test_bad_password(self, api, no_email):
        register(api)

        response = api.post("/api/auth/login", json={"email": "new@example.com", "password": "wrong-pass"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"

    def test_new_device_requires_verification(self, api, store, no_email):
        user_id = register(api).json()["data"]["user"]["id"]

        first = api.post(
            "/api/auth/login",
            json={"email": "new@example.com", "password": "secret123", "device_info": DEVICE},
        )
        assert first.json()["data"]["requires_device_verification"] is True
        assert first.json()["data"]["token"] is None

        code = store.otps.latest(user_id, OtpPurpose.EMAIL_VERIFICATION).otp
        verified = api.post(
            "/api/auth/verify-device",
            json={"user_id": user_id, "device_id": "laptop-1", "otp": code},
        )
        assert verified.status_code == 200

        again = api.post(
            "/api/auth/login",
            json={"email": "new@example.com", "password": "secret123", "device_info": DEVICE},
        )
        assert again.json()["data"]["token"]
        assert store.devices.devices[(user_id, "laptop-1")].device_name == "Chrome on macOS"


class TestPasswordReset:

    def test_unknown_email_gets_same_answer(self, api, no_email):
        response = api.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 200
        assert "If the email exists" in response.json()["message"]

    def test_reset_with_code(self, api, store, no_email):
        user_id = register(api).json()["data"]["user"]["id"]
        api.post("/api/auth/forgot-password", json={"email": "new@example.com"})
        code = store.otps.latest(user_id, OtpPurpose.PASSWORD_RESET).otp

        response = api.post(
            "/api/auth/reset-password",
            json={"user_id": user_id, "otp": code, "new_password": "brand-new-pass"},
        )

        assert response.status_code == 200
        login = api.post("/api/auth/login", json={"email": "new@example.com", "password": "brand-new-pass"})
        assert login.json()["data"]["token"]


class TestProtectedRoutes:

    def test_protected_route_no_auth(self, api):
        """Accessing a protected route without auth should return 401."""
        response = api.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization token"

    def test_protected_route_invalid_token(self, api):
        """Accessing with invalid token should return 401."""
        response = api.get("/api/auth/me", headers={"Authorization": "Bearer invalid.token.here"})
        assert response.status_code == 401

    def test_protected_route_valid_auth(self, api, user):
        response = api.get("/api/auth/me", headers=bearer(user))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "writer@example.com"

    def test_update_profile(self, api, user, store):
        response = api.patch("/api/auth/profile", json={"name": "  Renamed  "}, headers=bearer(user))

        assert response.status_code == 200
        assert store.users.users[user.id].name == "Renamed"
