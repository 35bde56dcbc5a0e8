"""
User Database Model

SQLModel table for registered users and their monthly free quota.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, utcnow


class UserModel(BaseModel, table=True):
    """
    Maps to the 'users' table.

    ``free_quota_used`` is only changed through conditional UPDATE
    statements in UserRepository.
    """

    __tablename__ = "users"

    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    name: str = Field(max_length=100)

    is_email_verified: bool = Field(default=False)
    email_verified_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Monthly free quota
    free_quota_used: int = Field(default=0)
    free_quota_limit: int = Field(default=3)
    last_quota_reset: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    stripe_customer_id: Optional[str] = Field(default=None, max_length=255, unique=True)
