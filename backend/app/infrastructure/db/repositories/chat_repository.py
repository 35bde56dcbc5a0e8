"""
Chat Repository for EchoWrite

Repositories for Conversation and ChatMessage persistence, including the
atomic transfer of an anonymous session's history to a registered user.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update

from app.domain.chat import (
    ChatMessage,
    ChatMessageCreate,
    Conversation,
    ConversationCreate,
    GenerationIteration,
    InputType,
    MessageRole,
)
from app.domain.interfaces import IChatMessageRepository, IConversationRepository
from app.infrastructure.db.models.chat_message import ChatMessageModel
from app.infrastructure.db.models.conversation import ConversationModel
from app.infrastructure.db.repositories.base_repository import SQLRepository, parse_uuid


logger = logging.getLogger(__name__)


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


class ConversationRepository(SQLRepository[ConversationModel], IConversationRepository):
    """
    Repository for conversation rows.

    Ownership filters always use exactly one of user_id / session_id.
    """

    model = ConversationModel

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        model = await self._get(conversation_id)
        return self._to_domain(model) if model else None

    async def list_for_owner(
        self,
        user_id: Optional[str],
        session_id: Optional[str],
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Conversation], int]:
        """
        Get one page of an owner's conversations, most recently updated first.

        Args:
            user_id: Owning user (takes precedence)
            session_id: Owning anonymous session
            search: Case-insensitive substring match on the title
            offset: Rows to skip
            limit: Page size

        Returns:
            (conversations, total matching rows)
        """
        if user_id:
            owner_filter = ConversationModel.user_id == parse_uuid(user_id)
        else:
            owner_filter = ConversationModel.session_id == parse_uuid(session_id)

        filters = [owner_filter]
        if search:
            filters.append(ConversationModel.title.ilike(f"%{search}%"))

        total_stmt = select(func.count()).select_from(ConversationModel).where(*filters)
        total = (await self._session.execute(total_stmt)).scalar_one()

        stmt = (
            select(ConversationModel)
            .where(*filters)
            .order_by(ConversationModel.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()], total

    async def count_for_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(ConversationModel).where(
            ConversationModel.user_id == parse_uuid(user_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(self, data: ConversationCreate) -> Conversation:
        model = ConversationModel(
            user_id=parse_uuid(data.user_id),
            session_id=parse_uuid(data.session_id),
            title=data.title,
            is_anonymous=data.is_anonymous,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def update_title(self, conversation_id: str, title: str) -> Optional[Conversation]:
        model = await self._update_fields(conversation_id, title=title)
        return self._to_domain(model) if model else None

    async def increment_message_count(self, conversation_id: str) -> None:
        await self._conditional_update(
            ConversationModel.id == parse_uuid(conversation_id),
            message_count=ConversationModel.message_count + 1,
            updated_at=func.now(),
        )

    async def delete(self, conversation_id: str) -> bool:
        return await self._delete(conversation_id)

    async def transfer_session_to_user(self, session_id: str, user_id: str) -> int:
        """
        Reassign a session's conversations and messages to a user.

        Runs inside a SAVEPOINT so either both tables change or neither does.
        """
        session_pk = parse_uuid(session_id)
        user_pk = parse_uuid(user_id)

        async with self._session.begin_nested():
            conversations = await self._session.execute(
                update(ConversationModel)
                .where(ConversationModel.session_id == session_pk)
                .values(user_id=user_pk, session_id=None, is_anonymous=False)
                .execution_options(synchronize_session=False)
            )
            messages = await self._session.execute(
                update(ChatMessageModel)
                .where(ChatMessageModel.session_id == session_pk)
                .values(user_id=user_pk, session_id=None)
                .execution_options(synchronize_session=False)
            )

        logger.info(
            f"Transferred {conversations.rowcount} conversations and "
            f"{messages.rowcount} messages from session {session_id} to user {user_id}"
        )
        return conversations.rowcount

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: ConversationModel) -> Conversation:
        return Conversation(
            id=str(model.id),
            user_id=_str_or_none(model.user_id),
            session_id=_str_or_none(model.session_id),
            title=model.title,
            is_anonymous=model.is_anonymous,
            message_count=model.message_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class ChatMessageRepository(SQLRepository[ChatMessageModel], IChatMessageRepository):
    """Append-only repository for chat messages."""

    model = ChatMessageModel

    async def create(self, data: ChatMessageCreate) -> ChatMessage:
        model = ChatMessageModel(
            conversation_id=parse_uuid(data.conversation_id),
            user_id=parse_uuid(data.user_id),
            session_id=parse_uuid(data.session_id),
            role=data.role.value,
            content=data.content,
            tokens=data.tokens,
            language=data.language,
            input_type=data.input_type.value,
            iterations=[i.model_dump() for i in data.iterations] if data.iterations else None,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def list_by_conversation(self, conversation_id: str) -> List[ChatMessage]:
        pk = parse_uuid(conversation_id)
        if pk is None:
            return []
        stmt = (
            select(ChatMessageModel)
            .where(ChatMessageModel.conversation_id == pk)
            .order_by(ChatMessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    def _to_domain(self, model: ChatMessageModel) -> ChatMessage:
        return ChatMessage(
            id=str(model.id),
            conversation_id=str(model.conversation_id),
            user_id=_str_or_none(model.user_id),
            session_id=_str_or_none(model.session_id),
            role=MessageRole(model.role),
            content=model.content,
            tokens=model.tokens,
            language=model.language,
            input_type=InputType(model.input_type),
            iterations=(
                [GenerationIteration(**i) for i in model.iterations]
                if model.iterations else None
            ),
            created_at=model.created_at,
        )
