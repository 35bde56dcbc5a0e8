"""
Stripe Payment Service

Infrastructure service for Stripe payment processing.
Handles hosted checkout sessions, checkout verification and webhook
signature checks. Local subscription state is owned by
SubscriptionService; this module only talks to Stripe.
"""

import logging
from typing import Optional

import stripe
from stripe import StripeError

from app.config.settings import Settings
from app.domain.subscription import BillingCycle, SubscriptionPlan, plan_price
from app.infrastructure.exceptions import ConfigurationError, StripeServiceError


logger = logging.getLogger(__name__)


class StripeService:
    """
    Stripe payment processing service.

    Args:
        api_key: Stripe secret key (passed per call, never set globally)
        webhook_secret: Signing secret for webhook verification
        currency: ISO currency for inline prices
    """

    def __init__(
        self,
        api_key: Optional[str],
        webhook_secret: Optional[str] = None,
        currency: str = "usd",
    ):
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._currency = currency

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeService":
        return cls(
            settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            currency=settings.stripe_currency,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _require_key(self) -> str:
        if not self._api_key:
            raise ConfigurationError("Stripe is not configured", missing_keys=["STRIPE_SECRET_KEY"])
        return self._api_key

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(
        self,
        user_id: str,
        email: str,
        plan: SubscriptionPlan,
        billing_cycle: BillingCycle,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        """
        Create a hosted Checkout Session for a plan.

        Prices are sent inline from the local catalog, so plans need no
        Stripe Price objects.

        Args:
            user_id: Internal user ID (stored in metadata)
            email: Prefills the checkout form and receipts
            plan: Catalog plan being purchased
            billing_cycle: Monthly or yearly billing
            success_url: Redirect after payment ({CHECKOUT_SESSION_ID} is appended)
            cancel_url: Redirect after cancellation

        Returns:
            stripe.checkout.Session with checkout URL
        """
        api_key = self._require_key()
        price = plan_price(plan, billing_cycle)
        interval = "year" if billing_cycle == BillingCycle.YEARLY else "month"
        cycle_label = "Yearly" if billing_cycle == BillingCycle.YEARLY else "Monthly"

        try:
            session = stripe.checkout.Session.create(
                api_key=api_key,
                customer_email=email,
                client_reference_id=user_id,
                mode="subscription",
                line_items=[
                    {
                        "price_data": {
                            "currency": self._currency,
                            "product_data": {
                                "name": f"{plan.tier} Plan",
                                "description": f"{plan.name} - {cycle_label} billing",
                            },
                            "unit_amount": round(price * 100),
                            "recurring": {"interval": interval},
                        },
                        "quantity": 1,
                    }
                ],
                success_url=f"{success_url}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                billing_address_collection="required",
                metadata={
                    "user_id": user_id,
                    "plan_id": plan.id,
                    "tier": plan.tier,
                    "billing_cycle": billing_cycle.value,
                },
            )
            logger.info(
                f"Created checkout session {session.id} for user {user_id}, "
                f"tier={plan.tier}, cycle={billing_cycle.value}"
            )
            return session

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(f"Failed to create checkout: {e.user_message}", original_error=e)

    async def retrieve_checkout_session(self, session_id: str) -> stripe.checkout.Session:
        try:
            return stripe.checkout.Session.retrieve(session_id, api_key=self._require_key())
        except StripeError as e:
            logger.error(f"Failed to retrieve checkout session {session_id}: {e}")
            raise StripeServiceError(f"Failed to verify checkout: {e.user_message}", original_error=e)

    # =========================================================================
    # Subscription Queries
    # =========================================================================

    async def get_subscription(self, subscription_id: str) -> Optional[stripe.Subscription]:
        """
        Retrieve a subscription by ID.

        Returns:
            stripe.Subscription or None if not found
        """
        try:
            return stripe.Subscription.retrieve(subscription_id, api_key=self._require_key())
        except StripeError as e:
            logger.warning(f"Failed to retrieve subscription {subscription_id}: {e}")
            return None

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature: str) -> stripe.Event:
        """
        Verify webhook signature and construct event.

        Raises:
            StripeServiceError if the payload or signature is invalid
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Stripe webhook secret is not configured",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )
        try:
            return stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except ValueError as e:
            raise StripeServiceError(f"Invalid payload: {e}", original_error=e)
        except stripe.SignatureVerificationError as e:
            raise StripeServiceError(f"Invalid signature: {e}", original_error=e)
