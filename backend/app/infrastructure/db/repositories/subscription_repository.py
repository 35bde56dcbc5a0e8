"""
Subscription Repository

Data access layer for subscription persistence.
Follows Repository pattern for Clean Architecture.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, or_, select

from app.domain.interfaces import ISubscriptionRepository
from app.domain.subscription import (
    UNLIMITED,
    BillingCycle,
    Subscription,
    SubscriptionCreate,
)
from app.infrastructure.db.models.subscription import SubscriptionModel
from app.infrastructure.db.repositories.base_repository import SQLRepository, parse_uuid


logger = logging.getLogger(__name__)


class SubscriptionRepository(SQLRepository[SubscriptionModel], ISubscriptionRepository):
    """
    Repository for subscription data access.

    Implements CRUD operations with domain model mapping. Usage counters
    and renewals are single UPDATE statements.
    """

    model = SubscriptionModel

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        model = await self._get(subscription_id)
        return self._to_domain(model) if model else None

    async def get_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
    ) -> Optional[Subscription]:
        statement = select(SubscriptionModel).where(
            SubscriptionModel.stripe_subscription_id == stripe_subscription_id
        )
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_by_user(self, user_id: str) -> List[Subscription]:
        pk = parse_uuid(user_id)
        if pk is None:
            return []
        statement = (
            select(SubscriptionModel)
            .where(SubscriptionModel.user_id == pk)
            .order_by(SubscriptionModel.created_at.desc())
        )
        result = await self._session.execute(statement)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def list_current_for_user(self, user_id: str, now: datetime) -> List[Subscription]:
        """
        Active, unexpired subscriptions in the order they are consumed.

        Unlimited first, then larger allowances, then the least used.
        """
        pk = parse_uuid(user_id)
        if pk is None:
            return []
        statement = (
            select(SubscriptionModel)
            .where(
                SubscriptionModel.user_id == pk,
                SubscriptionModel.is_active.is_(True),
                SubscriptionModel.end_date >= now,
            )
            .order_by(
                case((SubscriptionModel.max_messages == UNLIMITED, 0), else_=1),
                SubscriptionModel.max_messages.desc(),
                SubscriptionModel.used_messages.asc(),
            )
        )
        result = await self._session.execute(statement)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def find_due_for_renewal(self, now: datetime) -> List[Subscription]:
        statement = select(SubscriptionModel).where(
            SubscriptionModel.is_active.is_(True),
            SubscriptionModel.auto_renew.is_(True),
            SubscriptionModel.renewal_date <= now,
        )
        result = await self._session.execute(statement)
        return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(self, data: SubscriptionCreate) -> Subscription:
        model = SubscriptionModel(
            user_id=parse_uuid(data.user_id),
            plan_id=parse_uuid(data.plan_id),
            tier=data.tier,
            max_messages=data.max_messages,
            price=data.price,
            billing_cycle=data.billing_cycle.value,
            auto_renew=data.auto_renew,
            start_date=data.start_date,
            end_date=data.end_date,
            renewal_date=data.end_date,
            stripe_subscription_id=data.stripe_subscription_id,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        logger.info(f"Created subscription {model.id} ({model.tier}) for user {model.user_id}")
        return self._to_domain(model)

    async def update(self, subscription_id: str, **fields) -> Optional[Subscription]:
        if isinstance(fields.get("billing_cycle"), BillingCycle):
            fields["billing_cycle"] = fields["billing_cycle"].value
        model = await self._update_fields(subscription_id, **fields)
        return self._to_domain(model) if model else None

    async def delete(self, subscription_id: str) -> bool:
        return await self._delete(subscription_id)

    async def increment_usage(self, subscription_id: str, now: datetime) -> bool:
        pk = parse_uuid(subscription_id)
        if pk is None:
            return False
        rows = await self._conditional_update(
            SubscriptionModel.id == pk,
            SubscriptionModel.is_active.is_(True),
            SubscriptionModel.end_date >= now,
            or_(
                SubscriptionModel.max_messages == UNLIMITED,
                SubscriptionModel.used_messages < SubscriptionModel.max_messages,
            ),
            used_messages=SubscriptionModel.used_messages + 1,
        )
        return rows == 1

    async def renew(self, subscription_id: str, new_end_date: datetime) -> Optional[Subscription]:
        return await self.update(
            subscription_id,
            used_messages=0,
            end_date=new_end_date,
            renewal_date=new_end_date,
        )

    async def mark_inactive(self, subscription_id: str) -> Optional[Subscription]:
        return await self.update(subscription_id, is_active=False, auto_renew=False)

    async def deactivate_by_stripe_subscription_id(self, stripe_subscription_id: str) -> int:
        rows = await self._conditional_update(
            SubscriptionModel.stripe_subscription_id == stripe_subscription_id,
            is_active=False,
            auto_renew=False,
        )
        logger.info(f"Deactivated {rows} subscription(s) for Stripe subscription {stripe_subscription_id}")
        return rows

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """Convert database model to domain entity."""
        return Subscription(
            id=str(model.id),
            user_id=str(model.user_id),
            plan_id=str(model.plan_id),
            tier=model.tier,
            max_messages=model.max_messages,
            used_messages=model.used_messages or 0,
            price=float(model.price),
            billing_cycle=BillingCycle(model.billing_cycle) if model.billing_cycle else BillingCycle.MONTHLY,
            auto_renew=model.auto_renew,
            is_active=model.is_active,
            start_date=model.start_date,
            end_date=model.end_date,
            renewal_date=model.renewal_date,
            stripe_subscription_id=model.stripe_subscription_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
