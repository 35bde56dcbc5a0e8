"""
Lifecycle Jobs for EchoWrite

Periodic maintenance of the entitlement ledgers. Every job is
idempotent: running it twice in a row changes nothing the second time.

Suggested schedule:
    quota-reset      1st of every month, 00:00
    session-cleanup  daily, 02:00
    renewals         daily, 03:00
    otp-cleanup      daily
"""

import logging
from datetime import datetime, timezone

from app.domain.interfaces import IUserRepository
from app.domain.subscription import RenewalResult
from app.domain.users import start_of_month
from app.infrastructure.services.otp_service import OtpService
from app.infrastructure.services.session_service import SessionService
from app.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)


JOB_NAMES = ("quota-reset", "session-cleanup", "renewals", "otp-cleanup")


class LifecycleJobs:

    def __init__(
        self,
        users: IUserRepository,
        sessions: SessionService,
        subscriptions: SubscriptionService,
        otp: OtpService,
    ):
        self._users = users
        self._sessions = sessions
        self._subscriptions = subscriptions
        self._otp = otp

    async def reset_monthly_free_quota(self) -> int:
        """Zero free usage stamped before the current month. Returns users reset."""
        now = datetime.now(timezone.utc)
        month_start = start_of_month(now)

        reset = 0
        for user in await self._users.find_needing_quota_reset(month_start):
            if await self._users.reset_free_quota_if_stale(user.id, month_start, now):
                reset += 1

        logger.info(f"Monthly free quota reset: {reset} users")
        return reset

    async def cleanup_expired_sessions(self) -> int:
        return await self._sessions.cleanup_expired_sessions()

    async def cleanup_expired_otps(self) -> int:
        return await self._otp.cleanup_expired()

    async def renew_subscriptions(self) -> RenewalResult:
        return await self._subscriptions.process_auto_renewals()

    async def run(self, job: str) -> dict:
        """Run one job by CLI name; returns a JSON-friendly summary."""
        if job == "quota-reset":
            return {"users_reset": await self.reset_monthly_free_quota()}
        if job == "session-cleanup":
            return {"sessions_deleted": await self.cleanup_expired_sessions()}
        if job == "renewals":
            return (await self.renew_subscriptions()).model_dump()
        if job == "otp-cleanup":
            return {"otps_deleted": await self.cleanup_expired_otps()}
        raise ValueError(f"Unknown job: {job}")
