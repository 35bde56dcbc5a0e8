"""
Repository Layer for EchoWrite

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import (
    SQLRepository,
    parse_uuid,
)
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.db.repositories.session_repository import AnonymousSessionRepository
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.db.repositories.subscription_plan_repository import SubscriptionPlanRepository
from app.infrastructure.db.repositories.chat_repository import (
    ChatMessageRepository,
    ConversationRepository,
)
from app.infrastructure.db.repositories.auth_repository import (
    OtpRepository,
    UserDeviceRepository,
)
from app.infrastructure.db.repositories.webhook_event_repository import WebhookEventRepository


__all__ = [
    # Base
    "SQLRepository",
    "parse_uuid",
    # Repositories
    "UserRepository",
    "AnonymousSessionRepository",
    "SubscriptionRepository",
    "SubscriptionPlanRepository",
    "ConversationRepository",
    "ChatMessageRepository",
    "OtpRepository",
    "UserDeviceRepository",
    "WebhookEventRepository",
]
