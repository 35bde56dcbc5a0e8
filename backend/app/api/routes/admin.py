"""
Admin Routes for Catalog and Maintenance

Plan management and on-demand lifecycle jobs.
Protected by API key authentication.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import LifecycleJobsDep, SubscriptionPlanServiceDep, verify_admin_api_key
from app.api.responses import success_response
from app.domain.subscription import PlanCreate, PlanUpdate
from app.infrastructure.services.lifecycle_jobs import JOB_NAMES


logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)]  # Protect ALL admin routes
)


# =============================================================================
# Subscription Plans
# =============================================================================

@router.get("/plans")
async def list_plans(plans: SubscriptionPlanServiceDep):
    return success_response(await plans.get_all_plans())


@router.post("/plans", status_code=status.HTTP_201_CREATED)
async def create_plan(body: PlanCreate, plans: SubscriptionPlanServiceDep):
    return success_response(await plans.create_plan(body))


@router.get("/plans/{plan_id}")
async def get_plan(plan_id: str, plans: SubscriptionPlanServiceDep):
    return success_response(await plans.get_plan_by_id(plan_id))


@router.put("/plans/{plan_id}")
async def update_plan(plan_id: str, body: PlanUpdate, plans: SubscriptionPlanServiceDep):
    return success_response(await plans.update_plan(plan_id, body))


@router.delete("/plans/{plan_id}")
async def delete_plan(plan_id: str, plans: SubscriptionPlanServiceDep):
    await plans.delete_plan(plan_id)
    return success_response(message="Subscription plan deleted")


@router.patch("/plans/{plan_id}/toggle")
async def toggle_plan(plan_id: str, plans: SubscriptionPlanServiceDep):
    return success_response(await plans.toggle_plan_status(plan_id))


# =============================================================================
# Lifecycle Jobs
# =============================================================================

@router.post("/jobs/{job}")
async def run_job(job: str, jobs: LifecycleJobsDep):
    """
    Run one lifecycle job now.

    Jobs: quota-reset, session-cleanup, renewals, otp-cleanup.
    """
    if job not in JOB_NAMES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown job '{job}'. Expected one of: {', '.join(JOB_NAMES)}"
        )
    logger.info(f"Admin triggered lifecycle job {job}")
    return success_response(await jobs.run(job))
