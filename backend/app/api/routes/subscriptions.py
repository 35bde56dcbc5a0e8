"""
Subscription API Routes

REST API endpoints for plans, checkout and subscription management.
Every per-subscription route checks that the caller owns it.
"""

import logging

from fastapi import APIRouter, status

from app.api.dependencies import (
    CurrentUserId,
    SettingsDep,
    StripeServiceDep,
    SubscriptionPlanServiceDep,
    SubscriptionServiceDep,
    UserRepoDep,
)
from app.api.responses import success_response
from app.domain.subscription import (
    CheckoutResponse,
    CreateCheckoutRequest,
    CreateSubscriptionRequest,
    ToggleAutoRenewRequest,
    UpdateSubscriptionRequest,
    VerifyCheckoutRequest,
)
from app.infrastructure.exceptions import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions")


# =============================================================================
# Catalog & Checkout
# =============================================================================

@router.get("/plans")
async def get_plans(plans: SubscriptionPlanServiceDep):
    """Active plans for the pricing page (public)."""
    return success_response(await plans.get_active_plans())


@router.post("/checkout")
async def create_checkout(
    body: CreateCheckoutRequest,
    user_id: CurrentUserId,
    users: UserRepoDep,
    plans: SubscriptionPlanServiceDep,
    stripe_service: StripeServiceDep,
    settings: SettingsDep,
):
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User")
    plan = await plans.get_plan_by_id(body.plan_id)
    if not plan.is_active:
        raise BadRequestError("This plan is no longer available")

    session = await stripe_service.create_checkout_session(
        user_id=user.id,
        email=user.email,
        plan=plan,
        billing_cycle=body.billing_cycle,
        success_url=body.success_url or f"{settings.frontend_url}/subscriptions/success",
        cancel_url=body.cancel_url or f"{settings.frontend_url}/subscriptions",
    )
    return success_response(CheckoutResponse(checkout_url=session.url, session_id=session.id))


@router.post("/verify-checkout")
async def verify_checkout(
    body: VerifyCheckoutRequest,
    user_id: CurrentUserId,
    stripe_service: StripeServiceDep,
    subscriptions: SubscriptionServiceDep,
):
    """
    Confirm a checkout from the success page.

    Backs up the webhook: whichever arrives first creates the
    subscription, the other finds it already there.
    """
    checkout = await stripe_service.retrieve_checkout_session(body.session_id)

    metadata = checkout.get("metadata") or {}
    if metadata.get("user_id") != user_id:
        raise BadRequestError("Checkout session does not belong to this user")
    if checkout.get("payment_status") != "paid":
        raise BadRequestError("Payment not completed")

    subscription = await subscriptions.activate_from_checkout(checkout)
    if subscription is None:
        raise BadRequestError("Missing required metadata in checkout session")
    return success_response(subscription, message="Subscription activated")


# =============================================================================
# User Subscriptions
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_subscription(
    body: CreateSubscriptionRequest,
    user_id: CurrentUserId,
    subscriptions: SubscriptionServiceDep,
):
    subscription = await subscriptions.create_subscription(user_id, body.tier, body.billing_cycle)
    return success_response(subscription)


@router.get("")
async def list_subscriptions(user_id: CurrentUserId, subscriptions: SubscriptionServiceDep):
    return success_response(await subscriptions.get_user_subscriptions(user_id))


@router.get("/{subscription_id}")
async def get_subscription(subscription_id: str, user_id: CurrentUserId, subscriptions: SubscriptionServiceDep):
    return success_response(await subscriptions.get_subscription_by_id(subscription_id, user_id))


@router.put("/{subscription_id}")
async def update_subscription(
    subscription_id: str,
    body: UpdateSubscriptionRequest,
    user_id: CurrentUserId,
    subscriptions: SubscriptionServiceDep,
):
    return success_response(await subscriptions.update_subscription(subscription_id, user_id, body))


@router.delete("/{subscription_id}")
async def delete_subscription(subscription_id: str, user_id: CurrentUserId, subscriptions: SubscriptionServiceDep):
    await subscriptions.delete_subscription(subscription_id, user_id)
    return success_response(message="Subscription deleted")


@router.patch("/{subscription_id}/cancel")
async def cancel_subscription(subscription_id: str, user_id: CurrentUserId, subscriptions: SubscriptionServiceDep):
    await subscriptions.cancel_subscription(subscription_id, user_id)
    return success_response(message="Subscription cancelled")


@router.patch("/{subscription_id}/auto-renew")
async def toggle_auto_renew(
    subscription_id: str,
    body: ToggleAutoRenewRequest,
    user_id: CurrentUserId,
    subscriptions: SubscriptionServiceDep,
):
    subscription = await subscriptions.toggle_auto_renew(subscription_id, user_id, body.auto_renew)
    return success_response(subscription)
