"""
OTP Service for EchoWrite

Six-digit one-time passcodes for email verification, new-device login
and password reset.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from app.domain.auth import OtpFailureReason, OtpPurpose, OtpVerification
from app.domain.interfaces import IOtpRepository


logger = logging.getLogger(__name__)


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


class OtpService:
    """
    Args:
        otps: Passcode repository
        verification_expiry_minutes: Lifetime of email/device codes
        reset_expiry_minutes: Lifetime of password reset codes
    """

    def __init__(
        self,
        otps: IOtpRepository,
        verification_expiry_minutes: int = 10,
        reset_expiry_minutes: int = 15,
    ):
        self._otps = otps
        self._expiry = {
            OtpPurpose.EMAIL_VERIFICATION: verification_expiry_minutes,
            OtpPurpose.PASSWORD_RESET: reset_expiry_minutes,
        }

    def expiry_minutes(self, purpose: OtpPurpose) -> int:
        return self._expiry[purpose]

    async def issue(self, user_id: str, email: str, purpose: OtpPurpose) -> str:
        """Create a fresh code, discarding the user's unused codes for ``purpose``."""
        otp = generate_otp()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self._expiry[purpose])
        await self._otps.replace(user_id, email, otp, purpose, expires_at)
        return otp

    async def verify(self, user_id: str, otp: str, purpose: OtpPurpose) -> OtpVerification:
        """Consume ``otp`` if it is unused and unexpired."""
        matches = await self._otps.find(user_id, otp, purpose)
        unused = next((m for m in matches if not m.is_used), None)

        if unused is None:
            reason = OtpFailureReason.ALREADY_USED if matches else OtpFailureReason.INVALID
            return OtpVerification(success=False, reason=reason)

        if unused.expires_at <= datetime.now(timezone.utc):
            return OtpVerification(success=False, reason=OtpFailureReason.EXPIRED)

        await self._otps.mark_used(unused.id)
        return OtpVerification(success=True)

    async def cleanup_expired(self) -> int:
        deleted = await self._otps.delete_expired(datetime.now(timezone.utc))
        logger.info(f"Deleted {deleted} expired one-time passcodes")
        return deleted
