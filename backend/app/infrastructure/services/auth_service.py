"""
Auth Service for EchoWrite

Email/password accounts with emailed one-time codes for email
verification, new-device logins and password resets. Access tokens are
HS256 JWTs signed with the application secret.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from email_validator import EmailNotValidError, validate_email

from app.config.settings import Settings
from app.domain.auth import (
    OTP_FAILURE_MESSAGES,
    AuthResult,
    OtpPurpose,
    describe_user_agent,
)
from app.domain.interfaces import IUserDeviceRepository, IUserRepository
from app.domain.users import DeviceInfo, User, UserCreate, UserPublic
from app.infrastructure.exceptions import (
    BadRequestError,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    UnauthorizedError,
)
from app.infrastructure.services.email_service import EmailService
from app.infrastructure.services.otp_service import OtpService


logger = logging.getLogger(__name__)


PASSWORD_RESET_SENT_MESSAGE = "If the email exists, a password reset code has been sent."


# =============================================================================
# Passwords & Tokens
# =============================================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user: User, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        jwt.InvalidTokenError (or a subclass) for any bad token
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )


# =============================================================================
# Service
# =============================================================================

class AuthService:
    """
    Args:
        users: User repository
        devices: Known-device repository
        otp: One-time passcode service
        email: SMTP sender
        settings: Application settings (JWT, environment, quota defaults)
    """

    def __init__(
        self,
        users: IUserRepository,
        devices: IUserDeviceRepository,
        otp: OtpService,
        email: EmailService,
        settings: Settings,
    ):
        self._users = users
        self._devices = devices
        self._otp = otp
        self._email = email
        self._settings = settings

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        device_info: Optional[DeviceInfo] = None,
    ) -> AuthResult:
        """
        Create an unverified account and email it a verification code.

        A user whose code cannot be delivered is deleted again, so a
        failed registration can simply be retried.
        """
        try:
            email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError:
            raise BadRequestError("Invalid email format")

        if await self._users.get_by_email(email):
            raise ConflictError("User with this email already exists")

        password_hash = await asyncio.to_thread(hash_password, password)
        user = await self._users.create(
            UserCreate(
                email=email,
                password_hash=password_hash,
                name=name,
                free_quota_limit=self._settings.free_messages_limit,
            )
        )

        if device_info:
            await self._register_device(user.id, device_info)

        otp = await self._otp.issue(user.id, user.email, OtpPurpose.EMAIL_VERIFICATION)

        if not self._email.is_configured:
            if self._settings.is_production:
                await self._users.delete(user.id)
                raise BadRequestError("Email service not configured. Registration cannot be completed.")
            logger.warning(f"Email not configured; verification code for {user.email}: {otp}")
            return AuthResult(
                user=UserPublic.from_user(user),
                requires_email_verification=True,
                message="Registration successful! Check the server log for your verification code (development mode).",
            )

        try:
            await self._email.send_email_verification(
                user.email,
                user.name,
                otp,
                minutes=self._otp.expiry_minutes(OtpPurpose.EMAIL_VERIFICATION),
            )
        except EmailDeliveryError as e:
            logger.error(f"Rolling back registration of {user.email}: {e.message}")
            await self._users.delete(user.id)
            raise BadRequestError(
                "Failed to send verification email. Please try again or contact support.",
                original_error=e,
            )

        return AuthResult(
            user=UserPublic.from_user(user),
            requires_email_verification=True,
            message="Registration successful! Please check your email for verification code.",
        )

    # =========================================================================
    # Login
    # =========================================================================

    async def login(
        self,
        email: str,
        password: str,
        device_info: Optional[DeviceInfo] = None,
    ) -> AuthResult:
        user = await self._users.get_by_email(email)
        if user is None:
            raise UnauthorizedError("Invalid email or password")

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise UnauthorizedError("Invalid email or password")

        if not user.is_email_verified and self._settings.is_production:
            raise UnauthorizedError("Please verify your email before logging in")

        if device_info:
            device = await self._devices.get(user.id, device_info.device_id)
            if device is None or not device.is_trusted:
                await self._register_device(user.id, device_info)
                await self._send_device_code(user, device_info)
                return AuthResult(
                    user=UserPublic.from_user(user),
                    requires_device_verification=True,
                    message="New device detected. Please check your email for verification code.",
                )
            await self._register_device(user.id, device_info)

        logger.info(f"User {user.id} logged in")
        return AuthResult(
            user=UserPublic.from_user(user),
            token=create_access_token(user, self._settings),
        )

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify_email(self, user_id: str, otp: str) -> AuthResult:
        await self._consume_otp(user_id, otp, OtpPurpose.EMAIL_VERIFICATION)

        user = await self._users.update(
            user_id,
            is_email_verified=True,
            email_verified_at=datetime.now(timezone.utc),
        )
        if user is None:
            raise UnauthorizedError("User not found")

        return AuthResult(
            user=UserPublic.from_user(user),
            token=create_access_token(user, self._settings),
            message="Email verified successfully!",
        )

    async def verify_device(self, user_id: str, device_id: str, otp: str) -> AuthResult:
        await self._consume_otp(user_id, otp, OtpPurpose.EMAIL_VERIFICATION)
        await self._devices.trust(user_id, device_id)

        user = await self._users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("User not found")

        return AuthResult(
            user=UserPublic.from_user(user),
            token=create_access_token(user, self._settings),
            message="Device verified successfully!",
        )

    async def resend_verification(self, email: str) -> str:
        user = await self._users.get_by_email(email)
        if user is None:
            raise BadRequestError("User not found")
        if user.is_email_verified:
            raise BadRequestError("Email is already verified")

        otp = await self._otp.issue(user.id, user.email, OtpPurpose.EMAIL_VERIFICATION)
        if not self._email.is_configured:
            logger.warning(f"Email not configured; verification code for {user.email}: {otp}")
            return "Verification code regenerated. Check the server log for the code (development mode)."

        await self._email.send_email_verification(
            user.email,
            user.name,
            otp,
            minutes=self._otp.expiry_minutes(OtpPurpose.EMAIL_VERIFICATION),
        )
        return "Verification email sent successfully!"

    # =========================================================================
    # Password Reset
    # =========================================================================

    async def request_password_reset(self, email: str) -> str:
        """Always answers the same way, whether or not the account exists."""
        user = await self._users.get_by_email(email)
        if user is None:
            return PASSWORD_RESET_SENT_MESSAGE

        otp = await self._otp.issue(user.id, user.email, OtpPurpose.PASSWORD_RESET)
        if not self._email.is_configured:
            logger.warning(f"Email not configured; password reset code for {user.email}: {otp}")
            return PASSWORD_RESET_SENT_MESSAGE

        try:
            await self._email.send_password_reset(
                user.email,
                user.name,
                otp,
                minutes=self._otp.expiry_minutes(OtpPurpose.PASSWORD_RESET),
            )
        except EmailDeliveryError as e:
            logger.error(f"Password reset email to user {user.id} failed: {e.message}")
        return PASSWORD_RESET_SENT_MESSAGE

    async def reset_password(self, user_id: str, otp: str, new_password: str) -> None:
        result = await self._otp.verify(user_id, otp, OtpPurpose.PASSWORD_RESET)
        if not result.success:
            raise BadRequestError("Invalid or expired reset code")

        password_hash = await asyncio.to_thread(hash_password, new_password)
        await self._users.update(user_id, password_hash=password_hash)
        logger.info(f"Password reset for user {user_id}")

    # =========================================================================
    # Profile
    # =========================================================================

    async def get_profile(self, user_id: str) -> UserPublic:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        return UserPublic.from_user(user)

    async def update_profile(self, user_id: str, name: Optional[str] = None) -> UserPublic:
        if name is None:
            return await self.get_profile(user_id)
        user = await self._users.update(user_id, name=name.strip())
        if user is None:
            raise NotFoundError("User")
        return UserPublic.from_user(user)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _consume_otp(self, user_id: str, otp: str, purpose: OtpPurpose) -> None:
        result = await self._otp.verify(user_id, otp, purpose)
        if not result.success:
            raise BadRequestError(OTP_FAILURE_MESSAGES[result.reason], details={"reason": result.reason.value})

    async def _register_device(self, user_id: str, device_info: DeviceInfo) -> None:
        await self._devices.upsert(
            user_id,
            device_info.device_id,
            device_info.device_name or describe_user_agent(device_info.user_agent),
            device_info.user_agent,
            device_info.ip_address,
        )

    async def _send_device_code(self, user: User, device_info: DeviceInfo) -> None:
        otp = await self._otp.issue(user.id, user.email, OtpPurpose.EMAIL_VERIFICATION)
        if not self._email.is_configured:
            logger.warning(f"Email not configured; device code for {user.email}: {otp}")
            return
        await self._email.send_new_device_login(
            user.email,
            user.name,
            describe_user_agent(device_info.user_agent),
            otp,
            minutes=self._otp.expiry_minutes(OtpPurpose.EMAIL_VERIFICATION),
        )
