"""
SQLModel ORM Models for EchoWrite

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    BaseModel,
    TimestampMixin,
    UUIDMixin,
)
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.models.anonymous_session import AnonymousSessionModel
from app.infrastructure.db.models.subscription_plan import SubscriptionPlanModel
from app.infrastructure.db.models.subscription import SubscriptionModel
from app.infrastructure.db.models.conversation import ConversationModel
from app.infrastructure.db.models.chat_message import ChatMessageModel
from app.infrastructure.db.models.auth import OneTimePasswordModel, UserDeviceModel
from app.infrastructure.db.models.processed_webhook_event import ProcessedWebhookEventModel


__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    # Identity
    "UserModel",
    "AnonymousSessionModel",
    "OneTimePasswordModel",
    "UserDeviceModel",
    # Billing
    "SubscriptionPlanModel",
    "SubscriptionModel",
    "ProcessedWebhookEventModel",
    # Chat
    "ConversationModel",
    "ChatMessageModel",
]
