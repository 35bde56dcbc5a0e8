"""
Payment Gateways

Implementations of the PaymentGateway port used by subscription renewal.
"""

import logging

from app.config.settings import Settings
from app.domain.interfaces import PaymentGateway
from app.domain.subscription import Subscription
from app.infrastructure.payments.stripe_service import StripeService


logger = logging.getLogger(__name__)


COLLECTIBLE_STATUSES = ("active", "trialing")


class StripePaymentGateway(PaymentGateway):
    """
    Treats a renewal as paid when Stripe reports the linked subscription
    as collectible. Stripe charges the card itself; this only reads the
    outcome.
    """

    def __init__(self, stripe_service: StripeService):
        self._stripe = stripe_service

    async def attempt_payment(self, subscription: Subscription) -> bool:
        if not subscription.stripe_subscription_id:
            logger.warning(f"Subscription {subscription.id} has no Stripe link; cannot collect payment")
            return False

        remote = await self._stripe.get_subscription(subscription.stripe_subscription_id)
        if remote is None:
            return False

        status = remote.get("status")
        if status not in COLLECTIBLE_STATUSES:
            logger.warning(f"Stripe subscription {subscription.stripe_subscription_id} is {status}")
            return False
        return True


class AlwaysApprovePaymentGateway(PaymentGateway):
    """Approves every renewal. For development without Stripe keys."""

    async def attempt_payment(self, subscription: Subscription) -> bool:
        logger.info(f"Approving renewal of {subscription.id} without a payment provider")
        return True


def create_payment_gateway(settings: Settings) -> PaymentGateway:
    """Stripe when a key is configured, otherwise the development gateway."""
    if settings.stripe_secret_key:
        return StripePaymentGateway(StripeService.from_settings(settings))
    if settings.is_production:
        logger.warning("Stripe is not configured in production; renewals are auto-approved")
    return AlwaysApprovePaymentGateway()
