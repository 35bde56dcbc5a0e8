"""
SubscriptionPlan Database Model

Catalog of purchasable tiers managed from the admin API.
"""

from typing import List

from sqlalchemy import Column, JSON, Numeric
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class SubscriptionPlanModel(BaseModel, table=True):
    """Maps to the 'subscription_plans' table."""

    __tablename__ = "subscription_plans"

    tier: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=100)
    max_messages: int = Field(description="-1 means unlimited")
    monthly_price: float = Field(sa_type=Numeric(10, 2, asdecimal=False))
    yearly_price: float = Field(sa_type=Numeric(10, 2, asdecimal=False))
    features: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_active: bool = Field(default=True, index=True)
