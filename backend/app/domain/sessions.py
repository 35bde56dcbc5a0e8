"""
Anonymous Session Domain Models

A short-lived identity that lets visitors try EchoWrite before signing up.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AnonymousSession(BaseModel):
    """Ephemeral identity with a fixed conversation allowance."""
    id: str
    conversations_used: int = 0
    conversations_limit: int = 3
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    session_id: str
    conversations_used: int
    conversations_limit: int
    remaining_conversations: int
    expires_at: datetime
    is_expired: bool

    @classmethod
    def from_session(cls, session: AnonymousSession) -> "SessionResponse":
        return cls(
            session_id=session.id,
            conversations_used=session.conversations_used,
            conversations_limit=session.conversations_limit,
            remaining_conversations=session_remaining(session),
            expires_at=session.expires_at,
            is_expired=is_session_expired(session),
        )


class ClaimSessionResponse(BaseModel):
    conversations_transferred: int
    message: str


def session_expiry(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(days=days)


def is_session_expired(session: AnonymousSession, now: Optional[datetime] = None) -> bool:
    return (now or datetime.now(timezone.utc)) > session.expires_at


def can_create_conversation(session: AnonymousSession, now: Optional[datetime] = None) -> bool:
    """Usable only while under the limit and not yet expired."""
    return (
        session.conversations_used < session.conversations_limit
        and not is_session_expired(session, now)
    )


def session_remaining(session: AnonymousSession) -> int:
    return max(0, session.conversations_limit - session.conversations_used)
