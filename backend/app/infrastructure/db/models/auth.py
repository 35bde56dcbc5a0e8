"""
Authentication Database Models

One-time passcodes and known user devices.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, utcnow


class OneTimePasswordModel(BaseModel, table=True):
    """Maps to the 'one_time_passwords' table (email verification and password reset)."""

    __tablename__ = "one_time_passwords"

    user_id: UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    email: str = Field(max_length=255)
    otp: str = Field(max_length=6)
    purpose: str = Field(max_length=30, index=True)
    expires_at: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    is_used: bool = Field(default=False)


class UserDeviceModel(BaseModel, table=True):
    """Maps to the 'user_devices' table."""

    __tablename__ = "user_devices"
    __table_args__ = (UniqueConstraint("user_id", "device_id", name="uq_user_devices_user_device"),)

    user_id: UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    device_id: str = Field(max_length=255)
    device_name: str = Field(max_length=100)
    user_agent: str = Field(default="", max_length=512)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    is_trusted: bool = Field(default=False)
    last_used_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
