"""
Quota Service for EchoWrite

Single authority for "may this identity generate a post right now, and
which bucket pays for it".

Precedence, identical for checking and deducting:
    1. anonymous session (only when no user id is present)
    2. the user's monthly free quota
    3. active subscriptions: unlimited first, then largest allowance,
       then least used

Counters are changed only by conditional single-statement increments,
so a bucket never goes past its limit even when two requests for the
same identity race between check and deduct.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from app.domain.chat import RequestIdentity
from app.domain.interfaces import (
    IAnonymousSessionRepository,
    IConversationRepository,
    ISubscriptionRepository,
    IUserRepository,
)
from app.domain.quota import (
    ANONYMOUS_USAGE_HINT,
    IDENTITY_REQUIRED_MESSAGE,
    NO_QUOTA_MESSAGE,
    SESSION_EXHAUSTED_MESSAGE,
    FreeQuotaUsage,
    QuotaInfo,
    QuotaType,
    SessionQuotaUsage,
    SubscriptionUsage,
    UsageStats,
)
from app.domain.sessions import (
    AnonymousSession,
    can_create_conversation,
    is_session_expired,
    session_remaining,
)
from app.domain.subscription import (
    UNLIMITED,
    Subscription,
    has_remaining_messages,
    is_unlimited,
    subscription_remaining,
)
from app.domain.users import (
    User,
    can_use_free_quota,
    free_quota_remaining,
    needs_quota_reset,
    start_of_month,
)
from app.infrastructure.exceptions import NotFoundError, QuotaExceededError


logger = logging.getLogger(__name__)


class QuotaService:
    """
    Resolves and debits entitlement buckets.

    Args:
        users / sessions / subscriptions / conversations: repositories
        free_messages_limit: advertised monthly free allowance (usage hint)
    """

    def __init__(
        self,
        users: IUserRepository,
        sessions: IAnonymousSessionRepository,
        subscriptions: ISubscriptionRepository,
        conversations: IConversationRepository,
        free_messages_limit: int = 3,
    ):
        self._users = users
        self._sessions = sessions
        self._subscriptions = subscriptions
        self._conversations = conversations
        self._free_messages_limit = free_messages_limit

    # =========================================================================
    # Check
    # =========================================================================

    async def check_quota(self, identity: RequestIdentity) -> QuotaInfo:
        """
        Decide whether ``identity`` may generate now.

        Returns:
            QuotaInfo naming the bucket that would be charged.

        Raises:
            NotFoundError: unknown session or user
            QuotaExceededError: every eligible bucket is exhausted, the
                session expired, or no identity was supplied
        """
        return await self._resolve(identity, strict=True)

    async def get_quota_snapshot(self, identity: RequestIdentity) -> QuotaInfo:
        """Like check_quota, but reports exhaustion as ``remaining=0``."""
        return await self._resolve(identity, strict=False)

    async def _resolve(self, identity: RequestIdentity, strict: bool) -> QuotaInfo:
        now = datetime.now(timezone.utc)

        if not identity.user_id and identity.session_id:
            session = await self._load_session(identity.session_id)
            return self._session_quota(session, now, strict)

        if identity.user_id:
            user = await self._load_user(identity.user_id)
            user = await self._apply_monthly_reset(user, now)

            if can_use_free_quota(user):
                remaining = free_quota_remaining(user)
                return QuotaInfo(
                    type=QuotaType.FREE,
                    remaining=remaining,
                    total=user.free_quota_limit,
                    message=f"You have {remaining} free message(s) remaining this month",
                )

            current = await self._subscriptions.list_current_for_user(user.id, now)
            chosen = next((s for s in current if has_remaining_messages(s)), None)
            if chosen:
                return self._subscription_quota(chosen)

            if strict:
                raise QuotaExceededError(
                    NO_QUOTA_MESSAGE,
                    details={
                        "free_quota_used": user.free_quota_used,
                        "free_quota_limit": user.free_quota_limit,
                        "subscriptions": len(current),
                    },
                )
            return QuotaInfo(
                type=QuotaType.SUBSCRIPTION if current else QuotaType.FREE,
                remaining=0,
                total=current[0].max_messages if current else user.free_quota_limit,
                message=NO_QUOTA_MESSAGE,
            )

        raise QuotaExceededError(IDENTITY_REQUIRED_MESSAGE)

    def _session_quota(self, session: AnonymousSession, now: datetime, strict: bool) -> QuotaInfo:
        if not can_create_conversation(session, now):
            message = SESSION_EXHAUSTED_MESSAGE.format(limit=session.conversations_limit)
            if strict:
                raise QuotaExceededError(
                    message,
                    details={
                        "conversations_used": session.conversations_used,
                        "conversations_limit": session.conversations_limit,
                        "expired": is_session_expired(session, now),
                    },
                )
            return QuotaInfo(
                type=QuotaType.SESSION,
                remaining=0,
                total=session.conversations_limit,
                message=message,
            )

        remaining = session_remaining(session)
        return QuotaInfo(
            type=QuotaType.SESSION,
            remaining=remaining,
            total=session.conversations_limit,
            message=f"You have {remaining} free conversation(s) remaining",
        )

    @staticmethod
    def _subscription_quota(subscription: Subscription) -> QuotaInfo:
        if is_unlimited(subscription):
            return QuotaInfo(
                type=QuotaType.SUBSCRIPTION,
                remaining=UNLIMITED,
                total=UNLIMITED,
                message=f"Unlimited messages ({subscription.tier} plan)",
                subscription_id=subscription.id,
            )
        remaining = subscription_remaining(subscription)
        return QuotaInfo(
            type=QuotaType.SUBSCRIPTION,
            remaining=remaining,
            total=subscription.max_messages,
            message=f"{remaining} messages remaining ({subscription.tier} plan)",
            subscription_id=subscription.id,
        )

    # =========================================================================
    # Deduct
    # =========================================================================

    async def deduct_usage(self, identity: RequestIdentity) -> Optional[QuotaType]:
        """
        Charge one generation to the first bucket that still has room.

        Exactly one counter moves per call. Returns the bucket charged,
        or None when a concurrent request used up the last unit first.
        """
        now = datetime.now(timezone.utc)

        if not identity.user_id and identity.session_id:
            if await self._sessions.increment_usage(identity.session_id):
                return QuotaType.SESSION
            logger.warning(f"Session {identity.session_id} had no quota left at deduction time")
            return None

        if not identity.user_id:
            return None

        user = await self._users.get_by_id(identity.user_id)
        if user is None:
            logger.warning(f"Deduction skipped: user {identity.user_id} no longer exists")
            return None

        if can_use_free_quota(user) and await self._users.increment_free_quota(user.id):
            return QuotaType.FREE

        for subscription in await self._subscriptions.list_current_for_user(user.id, now):
            if not has_remaining_messages(subscription):
                continue
            if await self._subscriptions.increment_usage(subscription.id, now):
                return QuotaType.SUBSCRIPTION

        logger.warning(f"User {user.id} had no quota left at deduction time")
        return None

    # =========================================================================
    # Usage Stats
    # =========================================================================

    async def get_usage_stats(self, identity: RequestIdentity) -> UsageStats:
        """Usage summary for the client's quota widget."""
        now = datetime.now(timezone.utc)

        if not identity.user_id and identity.session_id:
            session = await self._load_session(identity.session_id)
            return UsageStats(
                user_type="anonymous",
                session_quota=SessionQuotaUsage(
                    used=session.conversations_used,
                    limit=session.conversations_limit,
                    remaining=session_remaining(session),
                ),
                message=ANONYMOUS_USAGE_HINT.format(limit=self._free_messages_limit),
            )

        if identity.user_id:
            user = await self._load_user(identity.user_id)
            # A pending reset is reported, not written, on a read
            used = 0 if needs_quota_reset(user, now) else user.free_quota_used
            subscriptions: List[Subscription] = await self._subscriptions.list_current_for_user(user.id, now)
            total_conversations = await self._conversations.count_for_user(user.id)

            return UsageStats(
                user_type="authenticated",
                free_quota=FreeQuotaUsage(
                    used=used,
                    limit=user.free_quota_limit,
                    remaining=max(0, user.free_quota_limit - used),
                    resets_on=start_of_month(now) + relativedelta(months=1),
                ),
                subscriptions=[
                    SubscriptionUsage(
                        id=s.id,
                        tier=s.tier,
                        used=s.used_messages,
                        limit=s.max_messages,
                        remaining=subscription_remaining(s),
                        ends_at=s.end_date,
                    )
                    for s in subscriptions
                ],
                total_conversations=total_conversations,
            )

        raise QuotaExceededError(IDENTITY_REQUIRED_MESSAGE)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_session(self, session_id: str) -> AnonymousSession:
        session = await self._sessions.get_by_id(session_id)
        if session is None:
            raise NotFoundError("Session")
        return session

    async def _load_user(self, user_id: str) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    async def _apply_monthly_reset(self, user: User, now: datetime) -> User:
        """Zero last month's free usage; safe under concurrent calls."""
        if not needs_quota_reset(user, now):
            return user
        if await self._users.reset_free_quota_if_stale(user.id, start_of_month(now), now):
            logger.info(f"Reset monthly free quota for user {user.id}")
        # Re-read: a concurrent request may have reset and already consumed
        return await self._load_user(user.id)
