"""
Dependency Injection Providers for EchoWrite

Provides FastAPI dependencies for database sessions and repositories.
Every repository of one request shares that request's session, so all
writes commit (or roll back) together.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_session
from app.infrastructure.db.repositories import (
    AnonymousSessionRepository,
    ChatMessageRepository,
    ConversationRepository,
    OtpRepository,
    SubscriptionPlanRepository,
    SubscriptionRepository,
    UserDeviceRepository,
    UserRepository,
    WebhookEventRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_user_repository(session: SessionDep) -> UserRepository:
    """
    Dependency provider for UserRepository.

    Usage:
        @router.get("/me")
        async def me(users: UserRepoDep):
            ...
    """
    return UserRepository(session)


def get_anonymous_session_repository(session: SessionDep) -> AnonymousSessionRepository:
    return AnonymousSessionRepository(session)


def get_subscription_repository(session: SessionDep) -> SubscriptionRepository:
    return SubscriptionRepository(session)


def get_subscription_plan_repository(session: SessionDep) -> SubscriptionPlanRepository:
    return SubscriptionPlanRepository(session)


def get_conversation_repository(session: SessionDep) -> ConversationRepository:
    return ConversationRepository(session)


def get_chat_message_repository(session: SessionDep) -> ChatMessageRepository:
    return ChatMessageRepository(session)


def get_otp_repository(session: SessionDep) -> OtpRepository:
    return OtpRepository(session)


def get_user_device_repository(session: SessionDep) -> UserDeviceRepository:
    return UserDeviceRepository(session)


def get_webhook_event_repository(session: SessionDep) -> WebhookEventRepository:
    return WebhookEventRepository(session)


# Type aliases for repository dependencies
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
AnonymousSessionRepoDep = Annotated[
    AnonymousSessionRepository,
    Depends(get_anonymous_session_repository)
]
SubscriptionRepoDep = Annotated[SubscriptionRepository, Depends(get_subscription_repository)]
SubscriptionPlanRepoDep = Annotated[
    SubscriptionPlanRepository,
    Depends(get_subscription_plan_repository)
]
ConversationRepoDep = Annotated[ConversationRepository, Depends(get_conversation_repository)]
ChatMessageRepoDep = Annotated[ChatMessageRepository, Depends(get_chat_message_repository)]
OtpRepoDep = Annotated[OtpRepository, Depends(get_otp_repository)]
UserDeviceRepoDep = Annotated[UserDeviceRepository, Depends(get_user_device_repository)]
WebhookEventRepoDep = Annotated[WebhookEventRepository, Depends(get_webhook_event_repository)]
