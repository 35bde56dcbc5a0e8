"""
Anonymous Session Repository
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete

from app.domain.interfaces import IAnonymousSessionRepository
from app.domain.sessions import AnonymousSession
from app.infrastructure.db.models.anonymous_session import AnonymousSessionModel
from app.infrastructure.db.repositories.base_repository import SQLRepository, parse_uuid


logger = logging.getLogger(__name__)


class AnonymousSessionRepository(SQLRepository[AnonymousSessionModel], IAnonymousSessionRepository):
    """Repository for the 'anonymous_sessions' table."""

    model = AnonymousSessionModel

    async def create(self, conversations_limit: int, expires_at: datetime) -> AnonymousSession:
        model = AnonymousSessionModel(
            conversations_limit=conversations_limit,
            expires_at=expires_at,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def get_by_id(self, session_id: str) -> Optional[AnonymousSession]:
        model = await self._get(session_id)
        return self._to_domain(model) if model else None

    async def increment_usage(self, session_id: str) -> bool:
        pk = parse_uuid(session_id)
        if pk is None:
            return False
        rows = await self._conditional_update(
            AnonymousSessionModel.id == pk,
            AnonymousSessionModel.conversations_used < AnonymousSessionModel.conversations_limit,
            conversations_used=AnonymousSessionModel.conversations_used + 1,
        )
        return rows == 1

    async def delete_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(AnonymousSessionModel).where(AnonymousSessionModel.expires_at < now)
        )
        return result.rowcount

    def _to_domain(self, model: AnonymousSessionModel) -> AnonymousSession:
        return AnonymousSession(
            id=str(model.id),
            conversations_used=model.conversations_used,
            conversations_limit=model.conversations_limit,
            expires_at=model.expires_at,
            created_at=model.created_at,
        )
