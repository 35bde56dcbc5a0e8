"""
User Domain Models for EchoWrite

Pydantic entities for registered users plus the free-quota rules
that operate on them.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class User(BaseModel):
    """Registered user with a monthly free-message allowance."""
    id: str
    email: str
    password_hash: str
    name: str
    is_email_verified: bool = False
    email_verified_at: Optional[datetime] = None
    free_quota_used: int = 0
    free_quota_limit: int = 3
    last_quota_reset: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stripe_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    """Schema for persisting a new user."""
    email: str
    password_hash: str
    name: str
    free_quota_limit: int = 3


class UserPublic(BaseModel):
    """User as returned by the API (no password hash)."""
    id: str
    email: str
    name: str
    is_email_verified: bool
    free_quota_used: int
    free_quota_limit: int
    last_quota_reset: datetime
    stripe_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(**user.model_dump(exclude={"password_hash", "email_verified_at", "updated_at"}))


# =============================================================================
# Request DTOs
# =============================================================================

class DeviceInfo(BaseModel):
    """Client device fingerprint sent with register/login."""
    device_id: str = Field(..., min_length=1, max_length=255)
    device_name: Optional[str] = None
    user_agent: str = ""
    ip_address: Optional[str] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)
    device_info: Optional[DeviceInfo] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    device_info: Optional[DeviceInfo] = None


class VerifyEmailRequest(BaseModel):
    user_id: str
    otp: str = Field(..., min_length=6, max_length=6)


class VerifyDeviceRequest(BaseModel):
    user_id: str
    device_id: str
    otp: str = Field(..., min_length=6, max_length=6)


class EmailOnlyRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    user_id: str
    otp: str = Field(..., min_length=6, max_length=6)
    new_password: str = Field(..., min_length=6, max_length=128)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


# =============================================================================
# Free Quota Rules (Business Logic)
# =============================================================================

def start_of_month(now: datetime) -> datetime:
    """First instant of the calendar month containing ``now``."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def needs_quota_reset(user: User, now: Optional[datetime] = None) -> bool:
    """True when the last reset happened in an earlier calendar month."""
    now = now or datetime.now(timezone.utc)
    last = user.last_quota_reset
    return last.month != now.month or last.year != now.year


def can_use_free_quota(user: User) -> bool:
    return user.free_quota_used < user.free_quota_limit


def free_quota_remaining(user: User) -> int:
    return max(0, user.free_quota_limit - user.free_quota_used)
