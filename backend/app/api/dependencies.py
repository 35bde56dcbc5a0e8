"""
API Dependencies

FastAPI dependency injection for authentication, identity resolution and
the application services.

Security: access tokens are HS256 JWTs verified with the application
secret. Never decode without verification.
"""

import logging
import secrets
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config.settings import Settings, get_settings
from app.domain.chat import RequestIdentity
from app.infrastructure.ai.generation_cycle import GenerationCycleEngine, create_generation_engine
from app.infrastructure.db.dependencies import (
    AnonymousSessionRepoDep,
    ChatMessageRepoDep,
    ConversationRepoDep,
    OtpRepoDep,
    SubscriptionPlanRepoDep,
    SubscriptionRepoDep,
    UserDeviceRepoDep,
    UserRepoDep,
    WebhookEventRepoDep,
)
from app.infrastructure.exceptions import UnauthorizedError
from app.infrastructure.payments import StripeService, create_payment_gateway
from app.infrastructure.services.auth_service import AuthService, decode_access_token
from app.infrastructure.services.chat_service import ChatService
from app.infrastructure.services.conversation_service import ConversationService
from app.infrastructure.services.email_service import EmailService
from app.infrastructure.services.lifecycle_jobs import LifecycleJobs
from app.infrastructure.services.otp_service import OtpService
from app.infrastructure.services.quota_service import QuotaService
from app.infrastructure.services.session_service import SessionService
from app.infrastructure.services.subscription_plan_service import SubscriptionPlanService
from app.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Authentication
# =============================================================================

def _user_id_from_token(token: str, settings: Settings) -> str:
    try:
        payload = decode_access_token(token, settings)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )
    return user_id


async def get_current_user_id(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract and verify the user ID from a Bearer JWT.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _user_id_from_token(credentials.credentials, settings)


async def get_optional_user_id(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Optionally extract user ID from JWT token.

    Returns ``None`` if no token is provided or it does not verify.
    """
    if not credentials:
        return None
    try:
        return _user_id_from_token(credentials.credentials, settings)
    except HTTPException:
        return None


async def get_identity(
    user_id: Optional[str] = Depends(get_optional_user_id),
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
) -> RequestIdentity:
    """
    Resolve the caller: a valid Bearer token wins, otherwise the
    ``X-Session-Id`` header.
    """
    if user_id:
        return RequestIdentity(user_id=user_id, session_id=x_session_id)
    if x_session_id:
        return RequestIdentity(session_id=x_session_id)
    raise UnauthorizedError("Authentication required. Provide JWT token or session ID.")


async def verify_admin_api_key(
    settings: SettingsDep,
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> None:
    """
    Guard for admin endpoints.

    503 when no admin key is configured, 403 on a missing or wrong key.
    """
    if not settings.admin_api_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is not configured",
        )
    # compare_digest for timing-attack resistance
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key",
        )


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
OptionalUserId = Annotated[Optional[str], Depends(get_optional_user_id)]
IdentityDep = Annotated[RequestIdentity, Depends(get_identity)]


# =============================================================================
# Services
# =============================================================================

def get_generation_engine(request: Request, settings: SettingsDep) -> GenerationCycleEngine:
    """One engine (and provider client) per application."""
    engine = getattr(request.app.state, "generation_engine", None)
    if engine is None:
        engine = create_generation_engine(settings)
        request.app.state.generation_engine = engine
    return engine


def get_stripe_service(settings: SettingsDep) -> StripeService:
    return StripeService.from_settings(settings)


def get_email_service(settings: SettingsDep) -> EmailService:
    return EmailService.from_settings(settings)


def get_quota_service(
    users: UserRepoDep,
    sessions: AnonymousSessionRepoDep,
    subscriptions: SubscriptionRepoDep,
    conversations: ConversationRepoDep,
    settings: SettingsDep,
) -> QuotaService:
    return QuotaService(
        users,
        sessions,
        subscriptions,
        conversations,
        free_messages_limit=settings.free_messages_limit,
    )


def get_session_service(
    sessions: AnonymousSessionRepoDep,
    conversations: ConversationRepoDep,
    settings: SettingsDep,
) -> SessionService:
    return SessionService(
        sessions,
        conversations,
        conversations_limit=settings.free_conversations_limit,
        expiry_days=settings.anonymous_session_expiry_days,
    )


def get_conversation_service(conversations: ConversationRepoDep) -> ConversationService:
    return ConversationService(conversations)


def get_chat_service(
    conversations: ConversationRepoDep,
    messages: ChatMessageRepoDep,
    quota: Annotated[QuotaService, Depends(get_quota_service)],
    engine: Annotated[GenerationCycleEngine, Depends(get_generation_engine)],
) -> ChatService:
    return ChatService(conversations, messages, quota, engine)


def get_otp_service(otps: OtpRepoDep, settings: SettingsDep) -> OtpService:
    return OtpService(
        otps,
        verification_expiry_minutes=settings.otp_expiry_minutes,
        reset_expiry_minutes=settings.password_reset_expiry_minutes,
    )


def get_auth_service(
    users: UserRepoDep,
    devices: UserDeviceRepoDep,
    otp: Annotated[OtpService, Depends(get_otp_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
    settings: SettingsDep,
) -> AuthService:
    return AuthService(users, devices, otp, email, settings)


def get_subscription_plan_service(plans: SubscriptionPlanRepoDep) -> SubscriptionPlanService:
    return SubscriptionPlanService(plans)


def get_subscription_service(
    subscriptions: SubscriptionRepoDep,
    plans: Annotated[SubscriptionPlanService, Depends(get_subscription_plan_service)],
    settings: SettingsDep,
) -> SubscriptionService:
    return SubscriptionService(subscriptions, plans, create_payment_gateway(settings))


def get_lifecycle_jobs(
    users: UserRepoDep,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
    otp: Annotated[OtpService, Depends(get_otp_service)],
) -> LifecycleJobs:
    return LifecycleJobs(users, sessions, subscriptions, otp)


QuotaServiceDep = Annotated[QuotaService, Depends(get_quota_service)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SubscriptionPlanServiceDep = Annotated[SubscriptionPlanService, Depends(get_subscription_plan_service)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
StripeServiceDep = Annotated[StripeService, Depends(get_stripe_service)]
LifecycleJobsDep = Annotated[LifecycleJobs, Depends(get_lifecycle_jobs)]

# Re-exported so routers import from one place
__all__ = [
    "CurrentUserId",
    "OptionalUserId",
    "IdentityDep",
    "SettingsDep",
    "UserRepoDep",
    "WebhookEventRepoDep",
    "QuotaServiceDep",
    "SessionServiceDep",
    "ConversationServiceDep",
    "ChatServiceDep",
    "AuthServiceDep",
    "SubscriptionPlanServiceDep",
    "SubscriptionServiceDep",
    "StripeServiceDep",
    "LifecycleJobsDep",
    "verify_admin_api_key",
]
