"""
Repository and Gateway Interfaces for EchoWrite

Abstract boundaries the application services depend on.
SQL implementations live in app.infrastructure.db.repositories; tests
plug in in-memory fakes.

Ledger counters (free quota, session usage, subscription usage) are only
ever changed through the ``increment_*`` / ``reset_*`` methods, which must
be single atomic statements in any storage-backed implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from app.domain.auth import OneTimePassword, OtpPurpose, UserDevice
from app.domain.chat import (
    ChatMessage,
    ChatMessageCreate,
    Conversation,
    ConversationCreate,
)
from app.domain.sessions import AnonymousSession
from app.domain.subscription import (
    Subscription,
    SubscriptionCreate,
    SubscriptionPlan,
    PlanCreate,
)
from app.domain.users import User, UserCreate


class IUserRepository(ABC):

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, data: UserCreate) -> User:
        pass

    @abstractmethod
    async def update(self, user_id: str, **fields) -> Optional[User]:
        """Update plain profile fields (name, password hash, verification)."""
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def increment_free_quota(self, user_id: str) -> bool:
        """Add one use if still under the limit. Returns False when exhausted."""
        pass

    @abstractmethod
    async def reset_free_quota_if_stale(self, user_id: str, month_start: datetime, now: datetime) -> bool:
        """Zero the counter only if the last reset predates ``month_start``."""
        pass

    @abstractmethod
    async def find_needing_quota_reset(self, month_start: datetime) -> List[User]:
        """Users with usage recorded and a reset older than ``month_start``."""
        pass


class IAnonymousSessionRepository(ABC):

    @abstractmethod
    async def create(self, conversations_limit: int, expires_at: datetime) -> AnonymousSession:
        pass

    @abstractmethod
    async def get_by_id(self, session_id: str) -> Optional[AnonymousSession]:
        pass

    @abstractmethod
    async def increment_usage(self, session_id: str) -> bool:
        """Add one conversation if still under the limit."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        pass


class ISubscriptionPlanRepository(ABC):

    @abstractmethod
    async def create(self, data: PlanCreate) -> SubscriptionPlan:
        pass

    @abstractmethod
    async def get_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        pass

    @abstractmethod
    async def get_by_tier(self, tier: str) -> Optional[SubscriptionPlan]:
        pass

    @abstractmethod
    async def list_plans(self, active_only: bool = False) -> List[SubscriptionPlan]:
        pass

    @abstractmethod
    async def update(self, plan_id: str, **fields) -> Optional[SubscriptionPlan]:
        pass

    @abstractmethod
    async def delete(self, plan_id: str) -> bool:
        pass


class ISubscriptionRepository(ABC):

    @abstractmethod
    async def create(self, data: SubscriptionCreate) -> Subscription:
        """Persist a subscription; ``renewal_date`` starts equal to ``end_date``."""
        pass

    @abstractmethod
    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[Subscription]:
        pass

    @abstractmethod
    async def list_current_for_user(self, user_id: str, now: datetime) -> List[Subscription]:
        """Active subscriptions not past ``end_date``, in consumption order."""
        pass

    @abstractmethod
    async def update(self, subscription_id: str, **fields) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def delete(self, subscription_id: str) -> bool:
        pass

    @abstractmethod
    async def increment_usage(self, subscription_id: str, now: datetime) -> bool:
        """Add one message if current and under the limit (always for unlimited)."""
        pass

    @abstractmethod
    async def find_due_for_renewal(self, now: datetime) -> List[Subscription]:
        pass

    @abstractmethod
    async def renew(self, subscription_id: str, new_end_date: datetime) -> Optional[Subscription]:
        """Reset usage and move both end and renewal dates to ``new_end_date``."""
        pass

    @abstractmethod
    async def mark_inactive(self, subscription_id: str) -> Optional[Subscription]:
        """Set ``is_active`` and ``auto_renew`` to False."""
        pass

    @abstractmethod
    async def deactivate_by_stripe_subscription_id(self, stripe_subscription_id: str) -> int:
        pass


class IConversationRepository(ABC):

    @abstractmethod
    async def create(self, data: ConversationCreate) -> Conversation:
        pass

    @abstractmethod
    async def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        pass

    @abstractmethod
    async def list_for_owner(
        self,
        user_id: Optional[str],
        session_id: Optional[str],
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Conversation], int]:
        """Page of conversations (most recently updated first) and the total."""
        pass

    @abstractmethod
    async def update_title(self, conversation_id: str, title: str) -> Optional[Conversation]:
        pass

    @abstractmethod
    async def increment_message_count(self, conversation_id: str) -> None:
        pass

    @abstractmethod
    async def delete(self, conversation_id: str) -> bool:
        pass

    @abstractmethod
    async def count_for_user(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def transfer_session_to_user(self, session_id: str, user_id: str) -> int:
        """
        Move every conversation and message of a session to a user.

        Both tables change in one transaction or not at all. Returns the
        number of conversations moved.
        """
        pass


class IChatMessageRepository(ABC):

    @abstractmethod
    async def create(self, data: ChatMessageCreate) -> ChatMessage:
        pass

    @abstractmethod
    async def list_by_conversation(self, conversation_id: str) -> List[ChatMessage]:
        """Messages oldest first."""
        pass


class IOtpRepository(ABC):

    @abstractmethod
    async def replace(
        self,
        user_id: str,
        email: str,
        otp: str,
        purpose: OtpPurpose,
        expires_at: datetime,
    ) -> OneTimePassword:
        """Delete the user's unused codes for ``purpose`` and store a new one."""
        pass

    @abstractmethod
    async def find(self, user_id: str, otp: str, purpose: OtpPurpose) -> List[OneTimePassword]:
        pass

    @abstractmethod
    async def mark_used(self, otp_id: str) -> None:
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        pass


class IUserDeviceRepository(ABC):

    @abstractmethod
    async def get(self, user_id: str, device_id: str) -> Optional[UserDevice]:
        pass

    @abstractmethod
    async def upsert(
        self,
        user_id: str,
        device_id: str,
        device_name: str,
        user_agent: str,
        ip_address: Optional[str],
    ) -> UserDevice:
        """Create an untrusted device or refresh ``last_used_at`` of a known one."""
        pass

    @abstractmethod
    async def trust(self, user_id: str, device_id: str) -> None:
        pass


class IWebhookEventRepository(ABC):

    @abstractmethod
    async def is_processed(self, event_id: str) -> bool:
        pass

    @abstractmethod
    async def mark_processed(self, event_id: str, event_type: str) -> None:
        pass


class PaymentGateway(ABC):
    """Billing collaborator consulted by the renewal job."""

    @abstractmethod
    async def attempt_payment(self, subscription: Subscription) -> bool:
        """Charge one billing period. True on success."""
        pass
