"""
Webhook Event Repository

DB-backed idempotency for Stripe webhooks (survives restarts).
"""

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.domain.interfaces import IWebhookEventRepository
from app.infrastructure.db.models.processed_webhook_event import ProcessedWebhookEventModel
from app.infrastructure.db.repositories.base_repository import SQLRepository


class WebhookEventRepository(SQLRepository[ProcessedWebhookEventModel], IWebhookEventRepository):

    model = ProcessedWebhookEventModel

    async def is_processed(self, event_id: str) -> bool:
        result = await self._session.execute(
            select(ProcessedWebhookEventModel.event_id).where(
                ProcessedWebhookEventModel.event_id == event_id
            )
        )
        return result.scalar_one_or_none() is not None

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        stmt = pg_insert(ProcessedWebhookEventModel).values(
            event_id=event_id,
            event_type=event_type,
        )
        await self._session.execute(stmt.on_conflict_do_nothing(index_elements=["event_id"]))
