"""
Authentication Domain Models

One-time passcodes, known devices and auth results.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.domain.users import UserPublic


class OtpPurpose(str, Enum):
    """Which flow a one-time passcode belongs to."""
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class OtpFailureReason(str, Enum):
    INVALID = "invalid"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"


OTP_FAILURE_MESSAGES = {
    OtpFailureReason.INVALID: "Invalid verification code. Please check and try again.",
    OtpFailureReason.EXPIRED: "Verification code has expired. Please request a new one.",
    OtpFailureReason.ALREADY_USED: "This verification code has already been used. Please request a new one.",
}


class OneTimePassword(BaseModel):
    id: str
    user_id: str
    email: str
    otp: str
    purpose: OtpPurpose
    expires_at: datetime
    is_used: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OtpVerification(BaseModel):
    success: bool
    reason: Optional[OtpFailureReason] = None


class UserDevice(BaseModel):
    id: str
    user_id: str
    device_id: str
    device_name: str
    user_agent: str = ""
    ip_address: Optional[str] = None
    is_trusted: bool = False
    last_used_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResult(BaseModel):
    """Outcome of register / login / verification calls."""
    user: UserPublic
    token: Optional[str] = None
    requires_email_verification: bool = False
    requires_device_verification: bool = False
    message: Optional[str] = None


def describe_user_agent(user_agent: str) -> str:
    """Human label for a browser, e.g. ``Chrome on macOS``."""
    def _platform(browser: str, *pairs: tuple[str, str]) -> str:
        for marker, label in pairs:
            if marker in user_agent:
                return f"{browser} on {label}"
        return browser

    desktop = (("Windows", "Windows"), ("Mac", "macOS"), ("Linux", "Linux"))
    if "Edg" in user_agent:
        return "Microsoft Edge"
    if "Chrome" in user_agent:
        return _platform("Chrome", *desktop)
    if "Firefox" in user_agent:
        return _platform("Firefox", *desktop)
    if "Safari" in user_agent:
        return _platform("Safari", ("iPhone", "iPhone"), ("iPad", "iPad"), ("Mac", "macOS"))
    return "Unknown Browser"
