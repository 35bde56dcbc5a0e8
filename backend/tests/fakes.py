"""
In-memory implementations of the repository interfaces.

Each fake honours the same contract as its SQL counterpart, including
the conditional increments, so service tests exercise real ledger rules.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from app.config.settings import get_settings
from app.domain.auth import OneTimePassword, OtpPurpose, UserDevice
from app.domain.chat import (
    ChatMessage,
    ChatMessageCreate,
    Conversation,
    ConversationCreate,
    GenerationIteration,
    GenerationResult,
)
from app.domain.interfaces import (
    IAnonymousSessionRepository,
    IChatMessageRepository,
    IConversationRepository,
    IOtpRepository,
    ISubscriptionPlanRepository,
    ISubscriptionRepository,
    IUserDeviceRepository,
    IUserRepository,
    IWebhookEventRepository,
    PaymentGateway,
)
from app.domain.sessions import AnonymousSession
from app.domain.subscription import (
    PlanCreate,
    Subscription,
    SubscriptionCreate,
    SubscriptionPlan,
    consumption_order_key,
    has_remaining_messages,
    is_subscription_current,
)
from app.domain.users import User, UserCreate
from app.infrastructure.services.auth_service import create_access_token


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeUserRepository(IUserRepository):

    def __init__(self):
        self.users: Dict[str, User] = {}

    def add(self, **fields) -> User:
        fields.setdefault("id", _new_id())
        fields.setdefault("email", f"{fields['id'][:8]}@example.com")
        fields.setdefault("password_hash", "x")
        fields.setdefault("name", "Test User")
        user = User(**fields)
        self.users[user.id] = user
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user.model_copy()
        return None

    async def create(self, data: UserCreate) -> User:
        return self.add(**data.model_dump(exclude={"email"}), email=data.email.lower(), created_at=_now())

    async def update(self, user_id: str, **fields) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        self.users[user_id] = user.model_copy(update=fields)
        return self.users[user_id].model_copy()

    async def delete(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None

    async def increment_free_quota(self, user_id: str) -> bool:
        user = self.users.get(user_id)
        if user is None or user.free_quota_used >= user.free_quota_limit:
            return False
        user.free_quota_used += 1
        return True

    async def reset_free_quota_if_stale(self, user_id: str, month_start: datetime, now: datetime) -> bool:
        user = self.users.get(user_id)
        if user is None or user.last_quota_reset >= month_start:
            return False
        user.free_quota_used = 0
        user.last_quota_reset = now
        return True

    async def find_needing_quota_reset(self, month_start: datetime) -> List[User]:
        return [
            u.model_copy()
            for u in self.users.values()
            if u.free_quota_used > 0 and u.last_quota_reset < month_start
        ]


class FakeAnonymousSessionRepository(IAnonymousSessionRepository):

    def __init__(self):
        self.sessions: Dict[str, AnonymousSession] = {}

    def add(self, **fields) -> AnonymousSession:
        fields.setdefault("id", _new_id())
        session = AnonymousSession(**fields)
        self.sessions[session.id] = session
        return session

    async def create(self, conversations_limit: int, expires_at: datetime) -> AnonymousSession:
        return self.add(conversations_limit=conversations_limit, expires_at=expires_at, created_at=_now())

    async def get_by_id(self, session_id: str) -> Optional[AnonymousSession]:
        session = self.sessions.get(session_id)
        return session.model_copy() if session else None

    async def increment_usage(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None or session.conversations_used >= session.conversations_limit:
            return False
        session.conversations_used += 1
        return True

    async def delete_expired(self, now: datetime) -> int:
        expired = [sid for sid, s in self.sessions.items() if s.expires_at < now]
        for sid in expired:
            del self.sessions[sid]
        return len(expired)


class FakeSubscriptionPlanRepository(ISubscriptionPlanRepository):

    def __init__(self):
        self.plans: Dict[str, SubscriptionPlan] = {}

    async def create(self, data: PlanCreate) -> SubscriptionPlan:
        plan = SubscriptionPlan(id=_new_id(), **data.model_dump())
        self.plans[plan.id] = plan
        return plan

    async def get_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        return self.plans.get(plan_id)

    async def get_by_tier(self, tier: str) -> Optional[SubscriptionPlan]:
        return next((p for p in self.plans.values() if p.tier == tier), None)

    async def list_plans(self, active_only: bool = False) -> List[SubscriptionPlan]:
        plans = [p for p in self.plans.values() if p.is_active or not active_only]
        return sorted(plans, key=lambda p: p.monthly_price)

    async def update(self, plan_id: str, **fields) -> Optional[SubscriptionPlan]:
        plan = self.plans.get(plan_id)
        if plan is None:
            return None
        self.plans[plan_id] = plan.model_copy(update=fields)
        return self.plans[plan_id]

    async def delete(self, plan_id: str) -> bool:
        return self.plans.pop(plan_id, None) is not None


class FakeSubscriptionRepository(ISubscriptionRepository):

    def __init__(self):
        self.subscriptions: Dict[str, Subscription] = {}

    def add(self, **fields) -> Subscription:
        fields.setdefault("id", _new_id())
        fields.setdefault("plan_id", _new_id())
        fields.setdefault("tier", "starter")
        fields.setdefault("price", 20.0)
        fields.setdefault("start_date", _now())
        fields.setdefault("renewal_date", fields.get("end_date"))
        subscription = Subscription(**fields)
        self.subscriptions[subscription.id] = subscription
        return subscription

    async def create(self, data: SubscriptionCreate) -> Subscription:
        return self.add(**data.model_dump(), renewal_date=data.end_date)

    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        subscription = self.subscriptions.get(subscription_id)
        return subscription.model_copy() if subscription else None

    async def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return next(
            (s.model_copy() for s in self.subscriptions.values()
             if s.stripe_subscription_id == stripe_subscription_id),
            None,
        )

    async def list_by_user(self, user_id: str) -> List[Subscription]:
        return [s.model_copy() for s in self.subscriptions.values() if s.user_id == user_id]

    async def list_current_for_user(self, user_id: str, now: datetime) -> List[Subscription]:
        current = [
            s.model_copy()
            for s in self.subscriptions.values()
            if s.user_id == user_id and is_subscription_current(s, now)
        ]
        return sorted(current, key=consumption_order_key)

    async def update(self, subscription_id: str, **fields) -> Optional[Subscription]:
        subscription = self.subscriptions.get(subscription_id)
        if subscription is None:
            return None
        self.subscriptions[subscription_id] = subscription.model_copy(update=fields)
        return self.subscriptions[subscription_id].model_copy()

    async def delete(self, subscription_id: str) -> bool:
        return self.subscriptions.pop(subscription_id, None) is not None

    async def increment_usage(self, subscription_id: str, now: datetime) -> bool:
        subscription = self.subscriptions.get(subscription_id)
        if subscription is None or not is_subscription_current(subscription, now):
            return False
        if not has_remaining_messages(subscription):
            return False
        subscription.used_messages += 1
        return True

    async def find_due_for_renewal(self, now: datetime) -> List[Subscription]:
        return [
            s.model_copy()
            for s in self.subscriptions.values()
            if s.is_active and s.auto_renew and s.renewal_date and s.renewal_date <= now
        ]

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
        count = 0
        for sid, s in list(self.subscriptions.items()):
            if s.stripe_subscription_id == stripe_subscription_id:
                await self.mark_inactive(sid)
                count += 1
        return count


class FakeChatMessageRepository(IChatMessageRepository):

    def __init__(self):
        self.messages: List[ChatMessage] = []

    async def create(self, data: ChatMessageCreate) -> ChatMessage:
        message = ChatMessage(id=_new_id(), created_at=_now(), **data.model_dump())
        self.messages.append(message)
        return message

    async def list_by_conversation(self, conversation_id: str) -> List[ChatMessage]:
        return [m for m in self.messages if m.conversation_id == conversation_id]


class FakeConversationRepository(IConversationRepository):

    def __init__(self, messages: Optional[FakeChatMessageRepository] = None):
        self.conversations: Dict[str, Conversation] = {}
        self.messages = messages or FakeChatMessageRepository()
        self.fail_message_transfer = False

    def add(self, **fields) -> Conversation:
        fields.setdefault("id", _new_id())
        fields.setdefault("updated_at", _now())
        conversation = Conversation(**fields)
        self.conversations[conversation.id] = conversation
        return conversation

    async def create(self, data: ConversationCreate) -> Conversation:
        return self.add(**data.model_dump(), created_at=_now())

    async def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self.conversations.get(conversation_id)
        return conversation.model_copy() if conversation else None

    async def list_for_owner(
        self,
        user_id: Optional[str],
        session_id: Optional[str],
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Conversation], int]:
        if user_id:
            owned = [c for c in self.conversations.values() if c.user_id == user_id]
        else:
            owned = [c for c in self.conversations.values() if c.session_id == session_id]
        if search:
            owned = [c for c in owned if search.lower() in c.title.lower()]
        owned.sort(key=lambda c: c.updated_at, reverse=True)
        return owned[offset:offset + limit], len(owned)

    async def update_title(self, conversation_id: str, title: str) -> Optional[Conversation]:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            return None
        conversation.title = title
        conversation.updated_at = _now()
        return conversation.model_copy()

    async def increment_message_count(self, conversation_id: str) -> None:
        conversation = self.conversations[conversation_id]
        conversation.message_count += 1
        conversation.updated_at = _now()

    async def delete(self, conversation_id: str) -> bool:
        if self.conversations.pop(conversation_id, None) is None:
            return False
        self.messages.messages = [m for m in self.messages.messages if m.conversation_id != conversation_id]
        return True

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for c in self.conversations.values() if c.user_id == user_id)

    async def transfer_session_to_user(self, session_id: str, user_id: str) -> int:
        # Stage both tables, then apply together
        conversations = {
            cid: c.model_copy(update={"user_id": user_id, "session_id": None, "is_anonymous": False})
            for cid, c in self.conversations.items()
            if c.session_id == session_id
        }
        messages = [
            m.model_copy(update={"user_id": user_id, "session_id": None}) if m.session_id == session_id else m
            for m in self.messages.messages
        ]
        if self.fail_message_transfer:
            raise RuntimeError("message update failed")
        self.conversations.update(conversations)
        self.messages.messages = messages
        return len(conversations)


class FakeOtpRepository(IOtpRepository):

    def __init__(self):
        self.otps: Dict[str, OneTimePassword] = {}

    async def replace(
        self,
        user_id: str,
        email: str,
        otp: str,
        purpose: OtpPurpose,
        expires_at: datetime,
    ) -> OneTimePassword:
        for oid, existing in list(self.otps.items()):
            if existing.user_id == user_id and existing.purpose == purpose and not existing.is_used:
                del self.otps[oid]
        record = OneTimePassword(
            id=_new_id(),
            user_id=user_id,
            email=email,
            otp=otp,
            purpose=purpose,
            expires_at=expires_at,
        )
        self.otps[record.id] = record
        return record

    async def find(self, user_id: str, otp: str, purpose: OtpPurpose) -> List[OneTimePassword]:
        return [
            o.model_copy()
            for o in self.otps.values()
            if o.user_id == user_id and o.otp == otp and o.purpose == purpose
        ]

    async def mark_used(self, otp_id: str) -> None:
        self.otps[otp_id].is_used = True

    async def delete_expired(self, now: datetime) -> int:
        expired = [oid for oid, o in self.otps.items() if o.expires_at < now]
        for oid in expired:
            del self.otps[oid]
        return len(expired)

    def latest(self, user_id: str, purpose: OtpPurpose) -> OneTimePassword:
        return [o for o in self.otps.values() if o.user_id == user_id and o.purpose == purpose][-1]


class FakeUserDeviceRepository(IUserDeviceRepository):

    def __init__(self):
        self.devices: Dict[Tuple[str, str], UserDevice] = {}

    async def get(self, user_id: str, device_id: str) -> Optional[UserDevice]:
        return self.devices.get((user_id, device_id))

    async def upsert(
        self,
        user_id: str,
        device_id: str,
        device_name: str,
        user_agent: str,
        ip_address: Optional[str],
    ) -> UserDevice:
        key = (user_id, device_id)
        if key in self.devices:
            self.devices[key].last_used_at = _now()
        else:
            self.devices[key] = UserDevice(
                id=_new_id(),
                user_id=user_id,
                device_id=device_id,
                device_name=device_name,
                user_agent=user_agent,
                ip_address=ip_address,
                last_used_at=_now(),
            )
        return self.devices[key]

    async def trust(self, user_id: str, device_id: str) -> None:
        device = self.devices.get((user_id, device_id))
        if device:
            device.is_trusted = True


class FakeWebhookEventRepository(IWebhookEventRepository):

    def __init__(self):
        self.processed: Dict[str, str] = {}

    async def is_processed(self, event_id: str) -> bool:
        return event_id in self.processed

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        self.processed[event_id] = event_type


class FakePaymentGateway(PaymentGateway):

    def __init__(self, approve: bool = True, error: Optional[Exception] = None):
        self.approve = approve
        self.error = error
        self.attempts: List[str] = []

    async def attempt_payment(self, subscription: Subscription) -> bool:
        self.attempts.append(subscription.id)
        if self.error:
            raise self.error
        return self.approve


class FakeGenerationEngine:
    """Stands in for GenerationCycleEngine without any provider."""

    def __init__(self, final_post: str = "Final post", error: Optional[Exception] = None):
        self.final_post = final_post
        self.error = error
        self.calls: List[Tuple[str, Optional[str]]] = []

    async def run(self, user_input: str, language: Optional[str] = None) -> GenerationResult:
        self.calls.append((user_input, language))
        if self.error:
            raise self.error
        iterations = [
            GenerationIteration(generation=f"draft {i}", reflection=f"critique {i}") for i in (1, 2)
        ]
        iterations.append(GenerationIteration(generation=self.final_post, reflection="critique 3"))
        return GenerationResult(final_post=self.final_post, iterations=iterations, tokens=42)


class FakeStore:
    """One set of repositories sharing state, like one database."""

    def __init__(self):
        self.users = FakeUserRepository()
        self.sessions = FakeAnonymousSessionRepository()
        self.plans = FakeSubscriptionPlanRepository()
        self.subscriptions = FakeSubscriptionRepository()
        self.messages = FakeChatMessageRepository()
        self.conversations = FakeConversationRepository(self.messages)
        self.otps = FakeOtpRepository()
        self.devices = FakeUserDeviceRepository()
        self.webhook_events = FakeWebhookEventRepository()


def bearer(user: User) -> Dict[str, str]:
    """Authorization header carrying a valid access token for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user, get_settings())}"}
