"""
User Repository

Data access layer for users and their monthly free quota.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select

from app.domain.interfaces import IUserRepository
from app.domain.users import User, UserCreate
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.repositories.base_repository import SQLRepository, parse_uuid


logger = logging.getLogger(__name__)


class UserRepository(SQLRepository[UserModel], IUserRepository):
    """Repository for the 'users' table."""

    model = UserModel

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_id(self, user_id: str) -> Optional[User]:
        model = await self._get(user_id)
        return self._to_domain(model) if model else None

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(UserModel).where(func.lower(UserModel.email) == email.lower())
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def find_needing_quota_reset(self, month_start: datetime) -> List[User]:
        stmt = select(UserModel).where(
            UserModel.last_quota_reset < month_start,
            UserModel.free_quota_used > 0,
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(self, data: UserCreate) -> User:
        model = UserModel(
            email=data.email.lower(),
            password_hash=data.password_hash,
            name=data.name,
            free_quota_limit=data.free_quota_limit,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        logger.info(f"Created user {model.id}")
        return self._to_domain(model)

    async def update(self, user_id: str, **fields) -> Optional[User]:
        model = await self._update_fields(user_id, **fields)
        return self._to_domain(model) if model else None

    async def delete(self, user_id: str) -> bool:
        return await self._delete(user_id)

    # =========================================================================
    # Ledger Methods (single-statement, race safe)
    # =========================================================================

    async def increment_free_quota(self, user_id: str) -> bool:
        pk = parse_uuid(user_id)
        if pk is None:
            return False
        rows = await self._conditional_update(
            UserModel.id == pk,
            UserModel.free_quota_used < UserModel.free_quota_limit,
            free_quota_used=UserModel.free_quota_used + 1,
        )
        return rows == 1

    async def reset_free_quota_if_stale(self, user_id: str, month_start: datetime, now: datetime) -> bool:
        pk = parse_uuid(user_id)
        if pk is None:
            return False
        rows = await self._conditional_update(
            UserModel.id == pk,
            UserModel.last_quota_reset < month_start,
            free_quota_used=0,
            last_quota_reset=now,
        )
        return rows == 1

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: UserModel) -> User:
        """Convert database model to domain entity."""
        return User(
            id=str(model.id),
            email=model.email,
            password_hash=model.password_hash,
            name=model.name,
            is_email_verified=model.is_email_verified,
            email_verified_at=model.email_verified_at,
            free_quota_used=model.free_quota_used,
            free_quota_limit=model.free_quota_limit,
            last_quota_reset=model.last_quota_reset,
            stripe_customer_id=model.stripe_customer_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
