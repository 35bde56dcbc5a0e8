#!/usr/bin/env python3
"""
Run EchoWrite lifecycle jobs from cron (or by hand).

Examples:
    python scripts/run_lifecycle_jobs.py quota-reset
    python scripts/run_lifecycle_jobs.py renewals
    python scripts/run_lifecycle_jobs.py all

Each job runs in its own transaction, so a failing job does not undo
the ones before it.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import settings
from app.infrastructure.db.database import DatabaseManager, session_scope
from app.infrastructure.db.repositories import (
    AnonymousSessionRepository,
    ConversationRepository,
    OtpRepository,
    SubscriptionPlanRepository,
    SubscriptionRepository,
    UserRepository,
)
from app.infrastructure.payments import create_payment_gateway
from app.infrastructure.services.lifecycle_jobs import JOB_NAMES, LifecycleJobs
from app.infrastructure.services.otp_service import OtpService
from app.infrastructure.services.session_service import SessionService
from app.infrastructure.services.subscription_plan_service import SubscriptionPlanService
from app.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger("lifecycle_jobs")


def build_jobs(session) -> LifecycleJobs:
    """Wire the services for one transaction."""
    sessions = SessionService(
        AnonymousSessionRepository(session),
        ConversationRepository(session),
        conversations_limit=settings.free_conversations_limit,
        expiry_days=settings.anonymous_session_expiry_days,
    )
    subscriptions = SubscriptionService(
        SubscriptionRepository(session),
        SubscriptionPlanService(SubscriptionPlanRepository(session)),
        create_payment_gateway(settings),
    )
    otp = OtpService(
        OtpRepository(session),
        verification_expiry_minutes=settings.otp_expiry_minutes,
        reset_expiry_minutes=settings.password_reset_expiry_minutes,
    )
    return LifecycleJobs(UserRepository(session), sessions, subscriptions, otp)


async def run(jobs_to_run: list[str]) -> int:
    db = DatabaseManager.from_settings(settings)
    failures = 0
    try:
        for job in jobs_to_run:
            try:
                async with session_scope(db) as session:
                    summary = await build_jobs(session).run(job)
            except Exception:
                logger.exception(f"Job {job} failed")
                failures += 1
                continue
            print(f"{job}: {json.dumps(summary)}")
    finally:
        await db.close()
    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description="Run EchoWrite lifecycle jobs")
    parser.add_argument("job", choices=[*JOB_NAMES, "all"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    jobs_to_run = list(JOB_NAMES) if args.job == "all" else [args.job]
    failures = asyncio.run(run(jobs_to_run))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
