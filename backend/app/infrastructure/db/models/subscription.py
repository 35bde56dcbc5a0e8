"""
Subscription Database Model

SQLModel table for subscription data persistence.
Plan price and limits are copied at creation time, never joined live.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Numeric
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class SubscriptionModel(BaseModel, table=True):
    """
    Subscription table for storing user subscription data.

    Maps to the 'subscriptions' table in PostgreSQL.
    """

    __tablename__ = "subscriptions"

    user_id: UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    plan_id: UUID = Field(foreign_key="subscription_plans.id")

    # Plan snapshot
    tier: str = Field(max_length=50)
    max_messages: int
    price: float = Field(sa_type=Numeric(10, 2, asdecimal=False))
    billing_cycle: str = Field(default="monthly", max_length=20)

    # Usage tracking
    used_messages: int = Field(default=0)

    # Lifecycle
    auto_renew: bool = Field(default=True)
    is_active: bool = Field(default=True, index=True)
    start_date: datetime = Field(sa_type=DateTime(timezone=True))
    end_date: datetime = Field(sa_type=DateTime(timezone=True))
    renewal_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True), index=True)

    # Stripe IDs
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255, unique=True, index=True)
