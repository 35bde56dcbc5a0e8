# API Routes Module
from app.api.routes import (
    admin,
    auth,
    chats,
    conversations,
    sessions,
    subscriptions,
    webhooks,
)

__all__ = [
    "admin",
    "auth",
    "chats",
    "conversations",
    "sessions",
    "subscriptions",
    "webhooks",
]
