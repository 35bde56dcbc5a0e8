"""
Quota Domain Models

Value objects describing which entitlement bucket an identity draws from
and the usage summary rendered by the client.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


SESSION_EXHAUSTED_MESSAGE = "You've used all {limit} free conversations. Sign up to continue!"
NO_QUOTA_MESSAGE = "No available quota. Please upgrade your plan to continue."
IDENTITY_REQUIRED_MESSAGE = "Authentication or session required"
ANONYMOUS_USAGE_HINT = "Sign up to get {limit} free messages per month and access to premium plans!"


class QuotaType(str, Enum):
    """Entitlement bucket a generation is charged to."""
    SESSION = "session"
    FREE = "free"
    SUBSCRIPTION = "subscription"


class QuotaInfo(BaseModel):
    """
    Result of a quota check.

    ``remaining`` and ``total`` are ``-1`` for unlimited subscriptions.
    ``subscription_id`` is set only for the subscription bucket.
    """
    type: QuotaType
    remaining: int
    total: int
    message: str
    subscription_id: Optional[str] = None


class SessionQuotaUsage(BaseModel):
    used: int
    limit: int
    remaining: int


class FreeQuotaUsage(BaseModel):
    used: int
    limit: int
    remaining: int
    resets_on: datetime


class SubscriptionUsage(BaseModel):
    id: str
    tier: str
    used: int
    limit: int
    remaining: int
    ends_at: datetime


class UsageStats(BaseModel):
    user_type: str
    session_quota: Optional[SessionQuotaUsage] = None
    free_quota: Optional[FreeQuotaUsage] = None
    subscriptions: List[SubscriptionUsage] = []
    total_conversations: Optional[int] = None
    message: Optional[str] = None
