"""
Email Service for EchoWrite

Transactional mail for verification codes, new-device logins and
password resets. SMTP is blocking, so each send runs in a worker thread.
"""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from app.config.settings import Settings
from app.infrastructure.exceptions import EmailDeliveryError


logger = logging.getLogger(__name__)


SMTP_TIMEOUT_SECONDS = 15

VERIFICATION_BODY = """Hi {name}!

Thank you for signing up for EchoWrite. Your verification code is:

    {otp}

This code will expire in {minutes} minutes.

If you didn't create an account with EchoWrite, please ignore this email.

The EchoWrite Team
"""

NEW_DEVICE_BODY = """Hi {name}!

We noticed a login attempt from a new device: {device}

Your verification code is:

    {otp}

This code will expire in {minutes} minutes.

If this wasn't you, please change your password immediately.

The EchoWrite Team
"""

PASSWORD_RESET_BODY = """Hi {name}!

We received a request to reset your EchoWrite password. Your reset code is:

    {otp}

This code will expire in {minutes} minutes.

If you didn't request this, ignore this email and your password stays unchanged.

The EchoWrite Team
"""


class EmailService:
    """
    SMTP sender.

    Args:
        host / port / user / password: SMTP server and credentials
        from_address: Sender; defaults to ``user``
        use_tls: Upgrade the connection with STARTTLS
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_address: Optional[str] = None,
        use_tls: bool = True,
    ):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._from = from_address or user
        self._use_tls = use_tls

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            settings.email_host,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_password,
            from_address=settings.email_from,
            use_tls=settings.email_use_tls,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._user and self._password and self._from)

    # =========================================================================
    # Templates
    # =========================================================================

    async def send_email_verification(self, email: str, name: str, otp: str, minutes: int = 10) -> None:
        await self.send(
            email,
            "Verify Your EchoWrite Account",
            VERIFICATION_BODY.format(name=name, otp=otp, minutes=minutes),
        )

    async def send_new_device_login(
        self, email: str, name: str, device: str, otp: str, minutes: int = 10
    ) -> None:
        await self.send(
            email,
            "New Device Login - EchoWrite",
            NEW_DEVICE_BODY.format(name=name, device=device, otp=otp, minutes=minutes),
        )

    async def send_password_reset(self, email: str, name: str, otp: str, minutes: int = 15) -> None:
        await self.send(
            email,
            "Reset Your EchoWrite Password",
            PASSWORD_RESET_BODY.format(name=name, otp=otp, minutes=minutes),
        )

    # =========================================================================
    # Transport
    # =========================================================================

    async def send(self, to_address: str, subject: str, body: str) -> None:
        """
        Deliver one plain-text message.

        Raises:
            EmailDeliveryError: the SMTP exchange failed
        """
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._from
        message["To"] = to_address
        message.set_content(body)

        await asyncio.to_thread(self._send_sync, message)
        logger.info(f"Sent '{subject}' to {to_address}")

    def _send_sync(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self._host, self._port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                if self._use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self._user and self._password:
                    server.login(self._user, self._password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"SMTP delivery to {message['To']} failed: {e}")
            raise EmailDeliveryError(
                "Failed to send email",
                details={"to": message["To"]},
                original_error=e,
            )
