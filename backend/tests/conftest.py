"""
Test configuration and fixtures for EchoWrite.

Provides shared fixtures for unit and integration tests. API tests run
against in-memory repositories wired in through
``app.dependency_overrides``; no database or AI provider is needed.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.domain.users import User
from tests.fakes import FakeGenerationEngine, FakeStore


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from app.main import app
    return app


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def engine() -> FakeGenerationEngine:
    return FakeGenerationEngine()


@pytest.fixture
def api(app, store, engine):
    """Test client whose repositories and generation engine are in-memory."""
    from app.api.dependencies import get_generation_engine
    from app.infrastructure.db import dependencies as db_deps

    app.dependency_overrides.update({
        db_deps.get_user_repository: lambda: store.users,
        db_deps.get_anonymous_session_repository: lambda: store.sessions,
        db_deps.get_subscription_repository: lambda: store.subscriptions,
        db_deps.get_subscription_plan_repository: lambda: store.plans,
        db_deps.get_conversation_repository: lambda: store.conversations,
        db_deps.get_chat_message_repository: lambda: store.messages,
        db_deps.get_otp_repository: lambda: store.otps,
        db_deps.get_user_device_repository: lambda: store.devices,
        db_deps.get_webhook_event_repository: lambda: store.webhook_events,
        get_generation_engine: lambda: engine,
    })
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def user(store) -> User:
    return store.users.add(email="writer@example.com", name="Writer", is_email_verified=True)


@pytest.fixture
def anonymous_session(store):
    return store.sessions.add(
        conversations_limit=3,
        expires_at=datetime.now(timezone.utc) + timedelta(days=30),
    )
