"""
Subscription Service for EchoWrite

User-facing subscription management plus the renewal procedure used by
the lifecycle jobs.

Renewal never decides payment outcomes itself: an injected
PaymentGateway answers "did the charge go through" and the service
applies exactly one of two transitions:
    - success: used_messages = 0, end/renewal date advanced one period
    - failure: is_active = False, auto_renew = False
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from app.domain.interfaces import PaymentGateway, ISubscriptionRepository
from app.domain.subscription import (
    BillingCycle,
    RenewalResult,
    Subscription,
    SubscriptionCreate,
    UpdateSubscriptionRequest,
    advance_period,
    plan_price,
)
from app.infrastructure.exceptions import BadRequestError, NotFoundError, PaymentFailedError
from app.infrastructure.services.subscription_plan_service import SubscriptionPlanService


logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Args:
        subscriptions: Subscription repository
        plans: Plan service used to price new subscriptions
        payment_gateway: Charges renewals; may be None where renewals never run
    """

    def __init__(
        self,
        subscriptions: ISubscriptionRepository,
        plans: SubscriptionPlanService,
        payment_gateway: Optional[PaymentGateway] = None,
    ):
        self._subscriptions = subscriptions
        self._plans = plans
        self._payment_gateway = payment_gateway

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_subscription(
        self,
        user_id: str,
        tier: str,
        billing_cycle: BillingCycle,
        stripe_subscription_id: Optional[str] = None,
    ) -> Subscription:
        """Start a subscription now, copying the plan's price and allowance."""
        plan = await self._plans.get_plan_by_tier(tier)
        start = datetime.now(timezone.utc)

        return await self._subscriptions.create(
            SubscriptionCreate(
                user_id=user_id,
                plan_id=plan.id,
                tier=plan.tier,
                max_messages=plan.max_messages,
                price=plan_price(plan, billing_cycle),
                billing_cycle=billing_cycle,
                start_date=start,
                end_date=advance_period(start, billing_cycle),
                stripe_subscription_id=stripe_subscription_id,
            )
        )

    async def activate_from_checkout(self, checkout: Mapping[str, Any]) -> Optional[Subscription]:
        """
        Create the local subscription for a completed Stripe checkout.

        Idempotent on the Stripe subscription id: replayed webhooks and the
        success-page verification both land here, only the first creates.

        Returns:
            The (new or existing) subscription, None when the checkout
            carries no usable metadata.
        """
        metadata = checkout.get("metadata") or {}
        user_id = metadata.get("user_id")
        plan_id = metadata.get("plan_id")
        billing_cycle = metadata.get("billing_cycle")
        stripe_subscription_id = checkout.get("subscription")

        if not (user_id and plan_id and billing_cycle and stripe_subscription_id):
            logger.warning(f"Checkout {checkout.get('id')} is missing subscription metadata")
            return None

        existing = await self._subscriptions.get_by_stripe_subscription_id(stripe_subscription_id)
        if existing:
            logger.info(f"Subscription for Stripe {stripe_subscription_id} already exists")
            return existing

        plan = await self._plans.get_plan_by_id(plan_id)
        return await self.create_subscription(
            user_id,
            plan.tier,
            BillingCycle(billing_cycle),
            stripe_subscription_id=stripe_subscription_id,
        )

    async def deactivate_stripe_subscription(self, stripe_subscription_id: str) -> int:
        return await self._subscriptions.deactivate_by_stripe_subscription_id(stripe_subscription_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_user_subscriptions(self, user_id: str) -> List[Subscription]:
        return await self._subscriptions.list_by_user(user_id)

    async def get_active_subscriptions(self, user_id: str) -> List[Subscription]:
        return await self._subscriptions.list_current_for_user(user_id, datetime.now(timezone.utc))

    async def get_subscription_by_id(self, subscription_id: str, user_id: str) -> Subscription:
        return await self._get_owned(subscription_id, user_id, "view")

    # =========================================================================
    # Owner Commands
    # =========================================================================

    async def update_subscription(
        self,
        subscription_id: str,
        user_id: str,
        data: UpdateSubscriptionRequest,
    ) -> Subscription:
        await self._get_owned(subscription_id, user_id, "modify")
        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        if not fields:
            raise BadRequestError("No fields to update")
        return await self._subscriptions.update(subscription_id, **fields)

    async def toggle_auto_renew(
        self,
        subscription_id: str,
        user_id: str,
        auto_renew: Optional[bool] = None,
    ) -> Subscription:
        """Set auto-renew explicitly, or flip it when no value is given."""
        subscription = await self._get_owned(subscription_id, user_id, "modify")
        value = (not subscription.auto_renew) if auto_renew is None else auto_renew
        return await self._subscriptions.update(subscription_id, auto_renew=value)

    async def cancel_subscription(self, subscription_id: str, user_id: str) -> None:
        await self._get_owned(subscription_id, user_id, "cancel")
        await self._subscriptions.mark_inactive(subscription_id)
        logger.info(f"User {user_id} cancelled subscription {subscription_id}")

    async def delete_subscription(self, subscription_id: str, user_id: str) -> None:
        await self._get_owned(subscription_id, user_id, "delete")
        await self._subscriptions.delete(subscription_id)

    # =========================================================================
    # Renewal
    # =========================================================================

    async def renew_subscription(self, subscription_id: str) -> Subscription:
        """
        Charge and extend one subscription by a billing period.

        Raises:
            NotFoundError: unknown subscription
            BadRequestError: no payment gateway is configured
            PaymentFailedError: the gateway declined or errored; the
                subscription has already been deactivated when this is raised
        """
        subscription = await self._subscriptions.get_by_id(subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription")
        self._require_gateway()

        if not await self._attempt_payment(subscription):
            await self._subscriptions.mark_inactive(subscription_id)
            raise PaymentFailedError(
                "Payment failed. Subscription marked inactive.",
                details={"subscription_id": subscription_id},
            )

        new_end_date = advance_period(subscription.end_date, subscription.billing_cycle)
        renewed = await self._subscriptions.renew(subscription_id, new_end_date)
        logger.info(f"Renewed subscription {subscription_id} until {new_end_date.isoformat()}")
        return renewed

    async def process_auto_renewals(self) -> RenewalResult:
        """Renew everything due; one failure never stops the batch."""
        self._require_gateway()
        result = RenewalResult()
        due = await self._subscriptions.find_due_for_renewal(datetime.now(timezone.utc))

        for subscription in due:
            try:
                await self.renew_subscription(subscription.id)
                result.renewed += 1
            except PaymentFailedError as e:
                result.failed += 1
                logger.warning(f"Failed to renew subscription {subscription.id}: {e.message}")

        logger.info(f"Auto-renewal finished: {result.renewed} renewed, {result.failed} failed")
        return result

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_gateway(self) -> None:
        if self._payment_gateway is None:
            raise BadRequestError("No payment gateway configured for renewals")

    async def _attempt_payment(self, subscription: Subscription) -> bool:
        """A gateway error counts as a declined payment."""
        try:
            return await self._payment_gateway.attempt_payment(subscription)
        except Exception as e:
            logger.warning(f"Payment gateway error for subscription {subscription.id}: {e}")
            return False

    async def _get_owned(self, subscription_id: str, user_id: str, action: str) -> Subscription:
        subscription = await self._subscriptions.get_by_id(subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription")
        if subscription.user_id != user_id:
            raise BadRequestError(f"Unauthorized to {action} this subscription")
        return subscription
