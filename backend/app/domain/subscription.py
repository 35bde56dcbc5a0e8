"""
Subscription Domain Models

Domain models for subscription management following Clean Architecture.
Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field


UNLIMITED = -1


class BillingCycle(str, Enum):
    """Billing period for subscriptions."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# Domain Entities
# =============================================================================

class SubscriptionPlan(BaseModel):
    """Catalog entry; prices and limits are copied onto each subscription."""
    id: str
    tier: str
    name: str
    max_messages: int
    monthly_price: float
    yearly_price: float
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Subscription(BaseModel):
    """Core subscription domain entity."""
    id: str
    user_id: str
    plan_id: str
    tier: str
    max_messages: int
    used_messages: int = 0
    price: float
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    auto_renew: bool = True
    is_active: bool = True
    start_date: datetime
    end_date: datetime
    renewal_date: Optional[datetime] = None
    stripe_subscription_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCreate(BaseModel):
    """Schema for persisting a new subscription."""
    user_id: str
    plan_id: str
    tier: str
    max_messages: int
    price: float
    billing_cycle: BillingCycle
    start_date: datetime
    end_date: datetime
    auto_renew: bool = True
    stripe_subscription_id: Optional[str] = None


class RenewalResult(BaseModel):
    """Aggregate outcome of one renewal batch."""
    renewed: int = 0
    failed: int = 0


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateSubscriptionRequest(BaseModel):
    tier: str = Field(..., min_length=1)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY


class UpdateSubscriptionRequest(BaseModel):
    auto_renew: Optional[bool] = None
    billing_cycle: Optional[BillingCycle] = None


class ToggleAutoRenewRequest(BaseModel):
    auto_renew: bool


class CreateCheckoutRequest(BaseModel):
    """Request DTO for creating a checkout session."""
    plan_id: str
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    success_url: Optional[str] = Field(None, description="Redirect URL after successful payment")
    cancel_url: Optional[str] = Field(None, description="Redirect URL after cancelled payment")


class VerifyCheckoutRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class CheckoutResponse(BaseModel):
    """Response DTO for checkout session creation."""
    checkout_url: str
    session_id: str


class PlanCreate(BaseModel):
    tier: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    max_messages: int = Field(..., ge=UNLIMITED)
    monthly_price: float = Field(..., ge=0)
    yearly_price: float = Field(..., ge=0)
    features: list[str] = Field(default_factory=list)
    is_active: bool = True


class PlanUpdate(BaseModel):
    tier: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    max_messages: Optional[int] = Field(None, ge=UNLIMITED)
    monthly_price: Optional[float] = Field(None, ge=0)
    yearly_price: Optional[float] = Field(None, ge=0)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None


# =============================================================================
# Entitlement Rules (Business Logic)
# =============================================================================

def plan_price(plan: SubscriptionPlan, cycle: BillingCycle) -> float:
    return plan.yearly_price if cycle == BillingCycle.YEARLY else plan.monthly_price


def is_unlimited(subscription: Subscription) -> bool:
    return subscription.max_messages == UNLIMITED


def has_remaining_messages(subscription: Subscription) -> bool:
    return is_unlimited(subscription) or subscription.used_messages < subscription.max_messages


def is_subscription_current(subscription: Subscription, now: datetime) -> bool:
    """Active and not past its end date."""
    return subscription.is_active and subscription.end_date >= now


def subscription_remaining(subscription: Subscription) -> int:
    """Remaining messages, ``-1`` for unlimited plans."""
    if is_unlimited(subscription):
        return UNLIMITED
    return max(0, subscription.max_messages - subscription.used_messages)


def consumption_order_key(subscription: Subscription) -> tuple[int, int, int]:
    """
    Sort key for picking the subscription to debit.

    Unlimited plans first, then the largest allowance, then the least used.
    ``-1`` would sort last under a plain descending order, so unlimited
    gets its own leading rank.
    """
    return (
        0 if is_unlimited(subscription) else 1,
        -subscription.max_messages,
        subscription.used_messages,
    )


def advance_period(start: datetime, cycle: BillingCycle) -> datetime:
    """End of one billing period beginning at ``start``."""
    if cycle == BillingCycle.YEARLY:
        return start + relativedelta(years=1)
    return start + relativedelta(months=1)


def is_due_for_renewal(subscription: Subscription, now: datetime) -> bool:
    return (
        subscription.is_active
        and subscription.auto_renew
        and subscription.renewal_date is not None
        and subscription.renewal_date <= now
    )
