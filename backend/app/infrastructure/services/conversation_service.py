"""
Conversation Service for EchoWrite

CRUD over conversations with ownership enforced on every call.
"""

import logging
import math
from typing import Optional

from app.domain.chat import (
    DEFAULT_CONVERSATION_TITLE,
    Conversation,
    ConversationCreate,
    ConversationPage,
    RequestIdentity,
    can_access,
)
from app.domain.interfaces import IConversationRepository
from app.infrastructure.exceptions import ForbiddenError, NotFoundError


logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class ConversationService:

    def __init__(self, conversations: IConversationRepository):
        self._conversations = conversations

    async def create_conversation(
        self,
        identity: RequestIdentity,
        title: Optional[str] = None,
    ) -> Conversation:
        # A user id wins over a session id for ownership
        data = ConversationCreate(
            user_id=identity.user_id,
            session_id=None if identity.user_id else identity.session_id,
            title=title or DEFAULT_CONVERSATION_TITLE,
            is_anonymous=not identity.user_id,
        )
        conversation = await self._conversations.create(data)
        logger.info(f"Created conversation {conversation.id}")
        return conversation

    async def get_conversation(self, conversation_id: str, identity: RequestIdentity) -> Conversation:
        """
        Raises:
            NotFoundError: no such conversation
            ForbiddenError: it belongs to someone else
        """
        conversation = await self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation")
        if not can_access(conversation, identity):
            raise ForbiddenError("You don't have access to this conversation")
        return conversation

    async def list_conversations(
        self,
        identity: RequestIdentity,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
    ) -> ConversationPage:
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)

        conversations, total = await self._conversations.list_for_owner(
            user_id=identity.user_id,
            session_id=identity.session_id,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total_pages = math.ceil(total / limit) if total else 0
        return ConversationPage(
            conversations=conversations,
            total=total,
            page=page,
            total_pages=total_pages,
            has_more=page < total_pages,
        )

    async def rename_conversation(
        self,
        conversation_id: str,
        identity: RequestIdentity,
        title: str,
    ) -> Conversation:
        await self.get_conversation(conversation_id, identity)
        return await self._conversations.update_title(conversation_id, title.strip())

    async def delete_conversation(self, conversation_id: str, identity: RequestIdentity) -> None:
        await self.get_conversation(conversation_id, identity)
        await self._conversations.delete(conversation_id)
        logger.info(f"Deleted conversation {conversation_id}")
