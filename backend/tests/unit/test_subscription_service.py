"""
Unit tests for subscriptions: creation, checkout activation, owner
commands and renewal.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.subscription import (
    UNLIMITED,
    BillingCycle,
    PlanCreate,
    UpdateSubscriptionRequest,
)
from app.infrastructure.exceptions import (
    BadRequestError,
    NotFoundError,
    PaymentFailedError,
)
from app.infrastructure.services.subscription_plan_service import SubscriptionPlanService
from app.infrastructure.services.subscription_service import SubscriptionService
from tests.fakes import FakePaymentGateway, FakeStore


NOW = datetime.now(timezone.utc)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def plans(store):
    return SubscriptionPlanService(store.plans)


@pytest.fixture
def subscriptions(store, plans, gateway):
    return SubscriptionService(store.subscriptions, plans, gateway)


@pytest.fixture
async def starter(plans):
    return await plans.create_plan(
        PlanCreate(tier="starter", name="Starter", max_messages=50, monthly_price=20, yearly_price=192)
    )


class TestPlans:

    @pytest.mark.asyncio
    async def test_duplicate_tier_is_rejected(self, plans, starter):
        with pytest.raises(BadRequestError):
            await plans.create_plan(
                PlanCreate(tier="starter", name="Again", max_messages=10, monthly_price=1, yearly_price=10)
            )

    @pytest.mark.asyncio
    async def test_unknown_tier(self, plans):
        with pytest.raises(NotFoundError):
            await plans.get_plan_by_tier("enterprise")

    @pytest.mark.asyncio
    async def test_unlimited_plan_allowed(self, plans):
        plan = await plans.create_plan(
            PlanCreate(tier="business", name="Business", max_messages=UNLIMITED, monthly_price=60, yearly_price=576)
        )
        assert plan.max_messages == UNLIMITED


class TestCreateSubscription:

    @pytest.mark.asyncio
    async def test_copies_plan_terms(self, subscriptions, starter):
        subscription = await subscriptions.create_subscription("user-1", "starter", BillingCycle.YEARLY)

        assert subscription.plan_id == starter.id
        assert subscription.max_messages == 50
        assert subscription.price == 192
        assert subscription.used_messages == 0
        assert subscription.is_active and subscription.auto_renew
        assert subscription.end_date.year == subscription.start_date.year + 1
        assert subscription.renewal_date == subscription.end_date

    @pytest.mark.asyncio
    async def test_checkout_activation_is_idempotent(self, subscriptions, starter, store):
        checkout = {
            "id": "cs_1",
            "subscription": "sub_stripe_1",
            "metadata": {"user_id": "user-1", "plan_id": starter.id, "billing_cycle": "monthly"},
        }

        first = await subscriptions.activate_from_checkout(checkout)
        second = await subscriptions.activate_from_checkout(checkout)

        assert first.id == second.id
        assert len(store.subscriptions.subscriptions) == 1
        assert first.stripe_subscription_id == "sub_stripe_1"

    @pytest.mark.asyncio
    async def test_checkout_without_metadata_is_ignored(self, subscriptions, store):
        assert await subscriptions.activate_from_checkout({"id": "cs_2", "metadata": {}}) is None
        assert store.subscriptions.subscriptions == {}


class TestOwnerCommands:

    @pytest.mark.asyncio
    async def test_other_users_cannot_modify(self, subscriptions, starter):
        subscription = await subscriptions.create_subscription("user-1", "starter", BillingCycle.MONTHLY)

        with pytest.raises(BadRequestError) as exc_info:
            await subscriptions.cancel_subscription(subscription.id, "user-2")

        assert exc_info.value.message == "Unauthorized to cancel this subscription"

    @pytest.mark.asyncio
    async def test_cancel_deactivates(self, subscriptions, starter, store):
        subscription = await subscriptions.create_subscription("user-1", "starter", BillingCycle.MONTHLY)

        await subscriptions.cancel_subscription(subscription.id, "user-1")

        stored = store.subscriptions.subscriptions[subscription.id]
        assert stored.is_active is False
        assert stored.auto_renew is False

    @pytest.mark.asyncio
    async def test_toggle_auto_renew_flips(self, subscriptions, starter):
        subscription = await subscriptions.create_subscription("user-1", "starter", BillingCycle.MONTHLY)

        toggled = await subscriptions.toggle_auto_renew(subscription.id, "user-1")

        assert toggled.auto_renew is False

    @pytest.mark.asyncio
    async def test_empty_update_is_rejected(self, subscriptions, starter):
        subscription = await subscriptions.create_subscription("user-1", "starter", BillingCycle.MONTHLY)

        with pytest.raises(BadRequestError):
            await subscriptions.update_subscription(subscription.id, "user-1", UpdateSubscriptionRequest())


class TestRenewal:

    def _due(self, store, **fields):
        end = NOW - timedelta(hours=1)
        return store.subscriptions.add(
            user_id="user-1",
            max_messages=50,
            used_messages=37,
            end_date=end,
            renewal_date=end,
            **fields,
        )

    @pytest.mark.asyncio
    async def test_successful_payment_resets_usage_and_extends(self, subscriptions, store):
        subscription = self._due(store)

        renewed = await subscriptions.renew_subscription(subscription.id)

        assert renewed.used_messages == 0
        assert renewed.is_active is True
        assert renewed.end_date > subscription.end_date
        assert renewed.renewal_date == renewed.end_date

    @pytest.mark.asyncio
    async def test_failed_payment_deactivates(self, store, plans):
        subscriptions = SubscriptionService(store.subscriptions, plans, FakePaymentGateway(approve=False))
        subscription = self._due(store)

        with pytest.raises(PaymentFailedError):
            await subscriptions.renew_subscription(subscription.id)

        stored = store.subscriptions.subscriptions[subscription.id]
        assert stored.is_active is False
        assert stored.auto_renew is False
        assert stored.used_messages == 37

    @pytest.mark.asyncio
    async def test_batch_counts_outcomes(self, store, plans):
        gateway = FakePaymentGateway(approve=False)
        subscriptions = SubscriptionService(store.subscriptions, plans, gateway)
        self._due(store)
        self._due(store)
        self._due(store, auto_renew=False)

        result = await subscriptions.process_auto_renewals()

        assert result.renewed == 0
        assert result.failed == 2
        assert len(gateway.attempts) == 2

    @pytest.mark.asyncio
    async def test_renewal_without_gateway(self, store, plans):
        subscriptions = SubscriptionService(store.subscriptions, plans)
        subscription = self._due(store)

        with pytest.raises(BadRequestError):
            await subscriptions.renew_subscription(subscription.id)

    @pytest.mark.asyncio
    async def test_gateway_error_counts_as_failed_payment(self, store, plans):
        gateway = FakePaymentGateway(error=ConnectionError("gateway unreachable"))
        subscriptions = SubscriptionService(store.subscriptions, plans, gateway)
        first = self._due(store)
        second = self._due(store)

        result = await subscriptions.process_auto_renewals()

        assert result.renewed == 0
        assert result.failed == 2
        for subscription in (first, second):
            stored = store.subscriptions.subscriptions[subscription.id]
            assert stored.is_active is False
            assert stored.auto_renew is False

    @pytest.mark.asyncio
    async def test_batch_without_gateway_touches_nothing(self, store, plans):
        subscriptions = SubscriptionService(store.subscriptions, plans)
        subscription = self._due(store)

        with pytest.raises(BadRequestError):
            await subscriptions.process_auto_renewals()

        stored = store.subscriptions.subscriptions[subscription.id]
        assert stored.is_active is True
        assert stored.used_messages == 37
