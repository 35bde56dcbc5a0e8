"""
Stripe Webhook Handler

Handles Stripe webhook events for subscription lifecycle management.
Implements idempotent event processing backed by the database (survives
restarts). The event is marked processed in the same transaction as its
effects, so a failed handler leaves it eligible for Stripe's retry.

Critical Events:
- checkout.session.completed: Activate subscription after payment
- invoice.payment_succeeded: Logged; renewal extends the period
- invoice.payment_failed: Deactivate the subscription
- customer.subscription.deleted: Deactivate the subscription
"""

import logging
from typing import Any, Mapping

from fastapi import APIRouter, HTTPException, Request, status

from app.api.dependencies import StripeServiceDep, SubscriptionServiceDep, WebhookEventRepoDep
from app.infrastructure.exceptions import StripeServiceError
from app.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions")


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_service: StripeServiceDep,
    subscriptions: SubscriptionServiceDep,
    events: WebhookEventRepoDep,
):
    """
    Handle Stripe webhook events.

    Verifies signature and processes subscription lifecycle events.
    Returns 200 OK to acknowledge receipt (Stripe will retry on failure).
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.verify_webhook_signature(payload, signature)
    except StripeServiceError as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    event_id = event.get("id")
    event_type = event.get("type")

    if await events.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return {"status": "already_processed"}

    logger.info(f"Processing webhook event: {event_type} ({event_id})")
    data = event["data"]["object"]

    if event_type == "checkout.session.completed":
        await handle_checkout_completed(data, subscriptions)
    elif event_type == "invoice.payment_succeeded":
        logger.info(f"Payment succeeded for Stripe subscription {data.get('subscription')}")
    elif event_type in ("invoice.payment_failed", "customer.subscription.deleted"):
        await handle_subscription_lost(event_type, data, subscriptions)
    else:
        logger.debug(f"Unhandled event type: {event_type}")

    await events.mark_processed(event_id, event_type)
    return {"status": "success"}


# =============================================================================
# Event Handlers
# =============================================================================

async def handle_checkout_completed(checkout: Mapping[str, Any], subscriptions: SubscriptionService) -> None:
    subscription = await subscriptions.activate_from_checkout(checkout)
    if subscription:
        logger.info(f"Checkout {checkout.get('id')} activated subscription {subscription.id}")


async def handle_subscription_lost(
    event_type: str,
    data: Mapping[str, Any],
    subscriptions: SubscriptionService,
) -> None:
    # Invoices reference the subscription; subscription events are the subscription
    stripe_subscription_id = data.get("subscription") if event_type.startswith("invoice.") else data.get("id")
    if not stripe_subscription_id:
        logger.warning(f"{event_type} without a subscription id, ignoring")
        return
    count = await subscriptions.deactivate_stripe_subscription(stripe_subscription_id)
    logger.warning(f"{event_type}: deactivated {count} subscription(s) for {stripe_subscription_id}")
