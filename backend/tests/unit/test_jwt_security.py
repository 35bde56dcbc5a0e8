"""
Security Test Suite: JWT Authentication

Tests that the centralized JWT verification in dependencies.py correctly:
- Rejects missing Authorization headers
- Rejects malformed tokens
- Rejects expired tokens
- Rejects tokens with invalid signatures
- Accepts tokens issued by the auth service
"""

import time

import jwt
from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from app.api.dependencies import get_current_user_id, get_identity
from app.config.settings import get_settings
from app.domain.chat import RequestIdentity
from app.domain.users import User
from app.infrastructure.exceptions import EchoWriteError
from app.infrastructure.services.auth_service import create_access_token, hash_password, verify_password
from app.main import echowrite_error_handler


# ---------------------------------------------------------------------------
# Minimal app that uses the real dependencies
# ---------------------------------------------------------------------------

test_app = FastAPI()
test_app.add_exception_handler(EchoWriteError, echowrite_error_handler)


@test_app.get("/protected")
async def protected_endpoint(user_id: str = Depends(get_current_user_id)):
    return {"user_id": user_id}


@test_app.get("/identity")
async def identity_endpoint(identity: RequestIdentity = Depends(get_identity)):
    return identity.model_dump()


client = TestClient(test_app, raise_server_exceptions=False)

USER = User(id="aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee", email="a@example.com", password_hash="x", name="A")


def _token(**claims) -> str:
    settings = get_settings()
    payload = {"sub": USER.id, "exp": int(time.time()) + 3600, **claims}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# ---------------------------------------------------------------------------
# Tests: rejection scenarios
# ---------------------------------------------------------------------------


class TestJWTRejection:
    """Verify that invalid/missing JWTs are rejected with 401."""

    def test_no_auth_header(self):
        resp = client.get("/protected")
        assert resp.status_code == 401

    def test_empty_bearer(self):
        resp = client.get("/protected", headers={"Authorization": "Bearer "})
        assert resp.status_code == 401

    def test_malformed_scheme(self):
        resp = client.get("/protected", headers={"Authorization": "Basic abc123"})
        assert resp.status_code == 401

    def test_garbage_token(self):
        resp = client.get("/protected", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_wrong_secret(self):
        token = jwt.encode({"sub": USER.id, "exp": int(time.time()) + 3600}, "other-secret", algorithm="HS256")
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_expired_token(self):
        resp = client.get("/protected", headers={"Authorization": f"Bearer {_token(exp=int(time.time()) - 60)}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired"

    def test_token_without_expiry(self):
        settings = get_settings()
        token = jwt.encode({"sub": USER.id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_raw_uuid_rejected(self):
        """'Bearer <raw-uuid>' is not a credential."""
        resp = client.get("/protected", headers={"Authorization": f"Bearer {USER.id}"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tests: acceptance scenarios
# ---------------------------------------------------------------------------


class TestJWTAcceptance:
    """Verify that valid JWTs are accepted."""

    def test_issued_token(self):
        token = create_access_token(USER, get_settings())
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user_id"] == USER.id


class TestIdentityResolution:

    def test_token_wins_over_session_header(self):
        resp = client.get(
            "/identity",
            headers={"Authorization": f"Bearer {_token()}", "X-Session-Id": "sess-1"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"user_id": USER.id, "session_id": "sess-1"}

    def test_session_header_alone(self):
        resp = client.get("/identity", headers={"X-Session-Id": "sess-1"})
        assert resp.json() == {"user_id": None, "session_id": "sess-1"}

    def test_invalid_token_falls_back_to_session(self):
        resp = client.get("/identity", headers={"Authorization": "Bearer junk", "X-Session-Id": "sess-1"})
        assert resp.json()["session_id"] == "sess-1"
        assert resp.json()["user_id"] is None

    def test_no_identity(self):
        resp = client.get("/identity")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"


class TestPasswords:

    def test_hash_round_trip(self):
        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("hunter22", "not-a-bcrypt-hash") is False
