"""
Subscription Plan Repository
"""

from typing import List, Optional

from sqlalchemy import select

from app.domain.interfaces import ISubscriptionPlanRepository
from app.domain.subscription import PlanCreate, SubscriptionPlan
from app.infrastructure.db.models.subscription_plan import SubscriptionPlanModel
from app.infrastructure.db.repositories.base_repository import SQLRepository


class SubscriptionPlanRepository(SQLRepository[SubscriptionPlanModel], ISubscriptionPlanRepository):
    """Repository for the 'subscription_plans' catalog."""

    model = SubscriptionPlanModel

    async def create(self, data: PlanCreate) -> SubscriptionPlan:
        model = SubscriptionPlanModel(**data.model_dump())
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def get_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        model = await self._get(plan_id)
        return self._to_domain(model) if model else None

    async def get_by_tier(self, tier: str) -> Optional[SubscriptionPlan]:
        result = await self._session.execute(
            select(SubscriptionPlanModel).where(SubscriptionPlanModel.tier == tier)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_plans(self, active_only: bool = False) -> List[SubscriptionPlan]:
        statement = select(SubscriptionPlanModel).order_by(SubscriptionPlanModel.monthly_price.asc())
        if active_only:
            statement = statement.where(SubscriptionPlanModel.is_active.is_(True))
        result = await self._session.execute(statement)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def update(self, plan_id: str, **fields) -> Optional[SubscriptionPlan]:
        model = await self._update_fields(plan_id, **fields)
        return self._to_domain(model) if model else None

    async def delete(self, plan_id: str) -> bool:
        return await self._delete(plan_id)

    def _to_domain(self, model: SubscriptionPlanModel) -> SubscriptionPlan:
        return SubscriptionPlan(
            id=str(model.id),
            tier=model.tier,
            name=model.name,
            max_messages=model.max_messages,
            monthly_price=float(model.monthly_price),
            yearly_price=float(model.yearly_price),
            features=list(model.features or []),
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
