"""
AnonymousSession Database Model
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utcnow


class AnonymousSessionModel(SQLModel, table=True):
    """Maps to the 'anonymous_sessions' table."""

    __tablename__ = "anonymous_sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)
    conversations_used: int = Field(default=0)
    conversations_limit: int = Field(default=3)
    expires_at: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
