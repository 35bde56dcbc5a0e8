"""
ChatMessage SQLModel for EchoWrite

Database model for chat messages. Rows are append-only.
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Text
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utcnow


class ChatMessageModel(SQLModel, table=True):
    """
    ChatMessage database table model.

    Stores individual messages within conversations. Assistant replies
    carry the generate/critique trace in ``iterations``.
    """

    __tablename__ = "chat_messages"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
        description="Unique message identifier"
    )

    conversation_id: UUID = Field(
        ...,
        sa_column=Column(
            "conversation_id",
            ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        ),
        description="Reference to parent conversation"
    )

    # Ownership mirrors the conversation
    user_id: Optional[UUID] = Field(default=None, index=True)
    session_id: Optional[UUID] = Field(default=None, index=True)

    role: str = Field(
        ...,
        sa_column=Column(String(20), nullable=False),
        description="Message role: 'user' or 'assistant'"
    )

    content: str = Field(
        ...,
        sa_column=Column(Text, nullable=False),
        description="Message content"
    )

    tokens: Optional[int] = Field(default=None)
    language: str = Field(default="english", max_length=50)
    input_type: str = Field(default="text", max_length=20)

    iterations: Optional[List[dict]] = Field(
        default=None,
        sa_column=Column(JSON),
        description="Generate/critique rounds for assistant messages"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
        description="Message timestamp"
    )
