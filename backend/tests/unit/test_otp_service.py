"""
Unit tests for one-time passcodes.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.auth import OtpFailureReason, OtpPurpose
from app.infrastructure.services.otp_service import OtpService, generate_otp
from tests.fakes import FakeOtpRepository


@pytest.fixture
def otps():
    return FakeOtpRepository()


@pytest.fixture
def service(otps):
    return OtpService(otps, verification_expiry_minutes=10, reset_expiry_minutes=15)


def test_generated_codes_are_six_digits():
    for _ in range(50):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()


class TestOtpService:

    @pytest.mark.asyncio
    async def test_code_verifies_once(self, service):
        code = await service.issue("user-1", "a@example.com", OtpPurpose.EMAIL_VERIFICATION)

        first = await service.verify("user-1", code, OtpPurpose.EMAIL_VERIFICATION)
        second = await service.verify("user-1", code, OtpPurpose.EMAIL_VERIFICATION)

        assert first.success is True
        assert second.success is False
        assert second.reason == OtpFailureReason.ALREADY_USED

    @pytest.mark.asyncio
    async def test_wrong_purpose_is_invalid(self, service):
        code = await service.issue("user-1", "a@example.com", OtpPurpose.EMAIL_VERIFICATION)

        result = await service.verify("user-1", code, OtpPurpose.PASSWORD_RESET)

        assert result.reason == OtpFailureReason.INVALID

    @pytest.mark.asyncio
    async def test_expired_code(self, service, otps):
        expired = datetime.now(timezone.utc) - timedelta(minutes=1)
        await otps.replace("user-1", "a@example.com", "654321", OtpPurpose.PASSWORD_RESET, expired)

        result = await service.verify("user-1", "654321", OtpPurpose.PASSWORD_RESET)

        assert result.reason == OtpFailureReason.EXPIRED

    @pytest.mark.asyncio
    async def test_reissue_replaces_unused_code(self, service, otps):
        await service.issue("user-1", "a@example.com", OtpPurpose.PASSWORD_RESET)
        await service.issue("user-1", "a@example.com", OtpPurpose.PASSWORD_RESET)

        assert len(otps.otps) == 1

    @pytest.mark.asyncio
    async def test_reset_codes_live_longer(self, service, otps):
        await service.issue("user-1", "a@example.com", OtpPurpose.PASSWORD_RESET)

        record = otps.latest("user-1", OtpPurpose.PASSWORD_RESET)
        lifetime = record.expires_at - datetime.now(timezone.utc)
        assert timedelta(minutes=14) < lifetime <= timedelta(minutes=15)
