"""
Base Repository for EchoWrite

Shared plumbing for the SQL repositories: session handling, id parsing
and generic primary-key lookups. Domain interfaces live in
app.domain.interfaces; concrete repositories inherit from both.
"""

from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


def parse_uuid(value: Any) -> Optional[UUID]:
    """UUID from a string id; None when the id is malformed."""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLRepository(Generic[ModelType]):
    """
    Async repository bound to one table.

    Args:
        session: Request- or job-scoped AsyncSession; the caller commits
    """

    model: Type[ModelType]

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _get(self, id: Any) -> Optional[ModelType]:
        """Fetch a row by primary key, None for unknown or malformed ids."""
        pk = parse_uuid(id)
        if pk is None:
            return None
        # Counters change through bulk UPDATEs, so never trust the identity map
        return await self._session.get(self.model, pk, populate_existing=True)

    async def _update_fields(self, id: Any, **fields) -> Optional[ModelType]:
        """Apply ``fields`` to one row and return it refreshed."""
        row = await self._get(id)
        if row is None:
            return None
        for key, value in fields.items():
            setattr(row, key, value)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def _delete(self, id: Any) -> bool:
        pk = parse_uuid(id)
        if pk is None:
            return False
        result = await self._session.execute(
            delete(self.model).where(self.model.id == pk)
        )
        return result.rowcount > 0

    async def _conditional_update(self, *criteria, **values) -> int:
        """Single UPDATE ... WHERE statement; returns rows affected."""
        stmt = (
            update(self.model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount
