"""
Conversation SQLModel for EchoWrite

A conversation is owned by a user XOR an anonymous session.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class ConversationModel(BaseModel, table=True):
    """Maps to the 'conversations' table."""

    __tablename__ = "conversations"

    user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True, ondelete="CASCADE")
    # No foreign key: conversations outlive the expired-session sweep
    session_id: Optional[UUID] = Field(default=None, index=True)
    title: str = Field(default="New Conversation", max_length=255)
    is_anonymous: bool = Field(default=False)
    message_count: int = Field(default=0)
