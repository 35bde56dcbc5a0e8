"""
Subscription Plan Service for EchoWrite

Catalog management for the admin API and the public pricing page.
"""

import logging
from typing import List

from app.domain.interfaces import ISubscriptionPlanRepository
from app.domain.subscription import PlanCreate, PlanUpdate, SubscriptionPlan
from app.infrastructure.exceptions import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)


class SubscriptionPlanService:

    def __init__(self, plans: ISubscriptionPlanRepository):
        self._plans = plans

    async def create_plan(self, data: PlanCreate) -> SubscriptionPlan:
        if await self._plans.get_by_tier(data.tier):
            raise BadRequestError("Subscription plan with this tier already exists")
        plan = await self._plans.create(data)
        logger.info(f"Created subscription plan {plan.tier}")
        return plan

    async def get_all_plans(self) -> List[SubscriptionPlan]:
        return await self._plans.list_plans()

    async def get_active_plans(self) -> List[SubscriptionPlan]:
        return await self._plans.list_plans(active_only=True)

    async def get_plan_by_id(self, plan_id: str) -> SubscriptionPlan:
        plan = await self._plans.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError("Subscription plan")
        return plan

    async def get_plan_by_tier(self, tier: str) -> SubscriptionPlan:
        plan = await self._plans.get_by_tier(tier)
        if plan is None:
            raise NotFoundError("Subscription plan")
        return plan

    async def update_plan(self, plan_id: str, data: PlanUpdate) -> SubscriptionPlan:
        plan = await self.get_plan_by_id(plan_id)

        fields = data.model_dump(exclude_unset=True)
        new_tier = fields.get("tier")
        if new_tier and new_tier != plan.tier:
            conflicting = await self._plans.get_by_tier(new_tier)
            if conflicting and conflicting.id != plan_id:
                raise BadRequestError("A plan with this tier already exists")

        return await self._plans.update(plan_id, **fields)

    async def delete_plan(self, plan_id: str) -> None:
        await self.get_plan_by_id(plan_id)
        await self._plans.delete(plan_id)
        logger.info(f"Deleted subscription plan {plan_id}")

    async def toggle_plan_status(self, plan_id: str) -> SubscriptionPlan:
        plan = await self.get_plan_by_id(plan_id)
        return await self._plans.update(plan_id, is_active=not plan.is_active)
