"""
Authentication Repositories

One-time passcodes and trusted devices.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select

from app.domain.auth import OneTimePassword, OtpPurpose, UserDevice
from app.domain.interfaces import IOtpRepository, IUserDeviceRepository
from app.infrastructure.db.models.auth import OneTimePasswordModel, UserDeviceModel
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.repositories.base_repository import SQLRepository, parse_uuid


class OtpRepository(SQLRepository[OneTimePasswordModel], IOtpRepository):

    model = OneTimePasswordModel

    async def replace(
        self,
        user_id: str,
        email: str,
        otp: str,
        purpose: OtpPurpose,
        expires_at: datetime,
    ) -> OneTimePassword:
        user_pk = parse_uuid(user_id)
        await self._session.execute(
            delete(OneTimePasswordModel).where(
                OneTimePasswordModel.user_id == user_pk,
                OneTimePasswordModel.purpose == purpose.value,
                OneTimePasswordModel.is_used.is_(False),
            )
        )
        model = OneTimePasswordModel(
            user_id=user_pk,
            email=email,
            otp=otp,
            purpose=purpose.value,
            expires_at=expires_at,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def find(self, user_id: str, otp: str, purpose: OtpPurpose) -> List[OneTimePassword]:
        user_pk = parse_uuid(user_id)
        if user_pk is None:
            return []
        result = await self._session.execute(
            select(OneTimePasswordModel)
            .where(
                OneTimePasswordModel.user_id == user_pk,
                OneTimePasswordModel.otp == otp,
                OneTimePasswordModel.purpose == purpose.value,
            )
            .order_by(OneTimePasswordModel.created_at.desc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def mark_used(self, otp_id: str) -> None:
        await self._update_fields(otp_id, is_used=True)

    async def delete_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(OneTimePasswordModel).where(OneTimePasswordModel.expires_at < now)
        )
        return result.rowcount

    def _to_domain(self, model: OneTimePasswordModel) -> OneTimePassword:
        return OneTimePassword(
            id=str(model.id),
            user_id=str(model.user_id),
            email=model.email,
            otp=model.otp,
            purpose=OtpPurpose(model.purpose),
            expires_at=model.expires_at,
            is_used=model.is_used,
            created_at=model.created_at,
        )


class UserDeviceRepository(SQLRepository[UserDeviceModel], IUserDeviceRepository):

    model = UserDeviceModel

    async def _find(self, user_id: str, device_id: str) -> Optional[UserDeviceModel]:
        result = await self._session.execute(
            select(UserDeviceModel).where(
                UserDeviceModel.user_id == parse_uuid(user_id),
                UserDeviceModel.device_id == device_id,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: str, device_id: str) -> Optional[UserDevice]:
        model = await self._find(user_id, device_id)
        return self._to_domain(model) if model else None

    async def upsert(
        self,
        user_id: str,
        device_id: str,
        device_name: str,
        user_agent: str,
        ip_address: Optional[str],
    ) -> UserDevice:
        model = await self._find(user_id, device_id)
        if model:
            model.last_used_at = utcnow()
            model.user_agent = user_agent
            model.ip_address = ip_address
        else:
            model = UserDeviceModel(
                user_id=parse_uuid(user_id),
                device_id=device_id,
                device_name=device_name,
                user_agent=user_agent,
                ip_address=ip_address,
                is_trusted=False,
            )
            self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def trust(self, user_id: str, device_id: str) -> None:
        model = await self._find(user_id, device_id)
        if model:
            model.is_trusted = True
            model.last_used_at = utcnow()
            await self._session.flush()

    def _to_domain(self, model: UserDeviceModel) -> UserDevice:
        return UserDevice(
            id=str(model.id),
            user_id=str(model.user_id),
            device_id=model.device_id,
            device_name=model.device_name,
            user_agent=model.user_agent,
            ip_address=model.ip_address,
            is_trusted=model.is_trusted,
            last_used_at=model.last_used_at,
        )
