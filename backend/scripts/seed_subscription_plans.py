#!/usr/bin/env python3
"""
Seed the subscription plan catalog.

Existing tiers are left untouched, so the script is safe to re-run.

Run: python scripts/seed_subscription_plans.py
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import settings
from app.domain.subscription import UNLIMITED, PlanCreate
from app.infrastructure.db.database import DatabaseManager, session_scope
from app.infrastructure.db.repositories import SubscriptionPlanRepository


# Yearly price is twelve months at 20% off
PLANS = [
    PlanCreate(
        tier="starter",
        name="Starter",
        max_messages=50,
        monthly_price=20.00,
        yearly_price=192.00,
        features=["50 posts per month", "3-round AI refinement", "All languages"],
    ),
    PlanCreate(
        tier="professional",
        name="Professional",
        max_messages=200,
        monthly_price=40.00,
        yearly_price=384.00,
        features=["200 posts per month", "3-round AI refinement", "All languages", "Priority generation"],
    ),
    PlanCreate(
        tier="business",
        name="Business",
        max_messages=UNLIMITED,
        monthly_price=60.00,
        yearly_price=576.00,
        features=["Unlimited posts", "3-round AI refinement", "All languages", "Priority generation"],
    ),
]


async def seed_plans():
    db = DatabaseManager.from_settings(settings)
    try:
        async with session_scope(db) as session:
            plans = SubscriptionPlanRepository(session)
            for plan in PLANS:
                if await plans.get_by_tier(plan.tier):
                    print(f"- {plan.name}: already present")
                    continue
                await plans.create(plan)
                print(f"+ {plan.name}: created")
    finally:
        await db.close()


if __name__ == "__main__":
    print("Seeding subscription plans...")
    print("=" * 50)
    asyncio.run(seed_plans())
