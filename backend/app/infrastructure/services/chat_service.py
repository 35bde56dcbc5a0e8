"""
Chat Service for EchoWrite

The send-message pipeline: quota check, persistence of the user turn,
the generation cycle, persistence of the assistant turn, and the single
quota deduction that pays for it.
"""

import logging
from typing import List

from pydantic import BaseModel

from app.domain.chat import (
    ChatMessage,
    ChatMessageCreate,
    Conversation,
    InputType,
    MessageRole,
    RequestIdentity,
    SendMessageRequest,
    can_access,
    generate_conversation_title,
)
from app.domain.interfaces import IChatMessageRepository, IConversationRepository
from app.domain.quota import QuotaInfo
from app.infrastructure.ai.generation_cycle import GenerationCycleEngine
from app.infrastructure.exceptions import ForbiddenError, NotFoundError
from app.infrastructure.services.quota_service import QuotaService


logger = logging.getLogger(__name__)


class SendMessageResult(BaseModel):
    user_message: ChatMessage
    assistant_message: ChatMessage
    quota_remaining: QuotaInfo


class ChatService:
    """
    Args:
        conversations: Conversation repository
        messages: Chat message repository
        quota: Quota resolver used for check, deduct and snapshot
        engine: Generation cycle engine
    """

    def __init__(
        self,
        conversations: IConversationRepository,
        messages: IChatMessageRepository,
        quota: QuotaService,
        engine: GenerationCycleEngine,
    ):
        self._conversations = conversations
        self._messages = messages
        self._quota = quota
        self._engine = engine

    async def send_message(
        self,
        conversation_id: str,
        identity: RequestIdentity,
        request: SendMessageRequest,
    ) -> SendMessageResult:
        """
        Turn one user prompt into a stored assistant reply.

        Quota is checked before anything is written and deducted only
        after the assistant reply is stored, so a failed generation
        costs nothing.

        Raises:
            QuotaExceededError: no bucket can pay for the generation
            NotFoundError / ForbiddenError: conversation missing or not owned
            AIServiceError: the provider failed during the cycle
        """
        await self._quota.check_quota(identity)

        conversation = await self._load_owned(conversation_id, identity)
        first_exchange = conversation.message_count == 0

        user_message = await self._messages.create(
            ChatMessageCreate(
                conversation_id=conversation.id,
                user_id=conversation.user_id,
                session_id=conversation.session_id,
                role=MessageRole.USER,
                content=request.content,
                language=request.language,
                input_type=request.input_type,
            )
        )

        result = await self._engine.run(request.content, request.language)

        assistant_message = await self._messages.create(
            ChatMessageCreate(
                conversation_id=conversation.id,
                user_id=conversation.user_id,
                session_id=conversation.session_id,
                role=MessageRole.ASSISTANT,
                content=result.final_post,
                tokens=result.tokens,
                language=request.language,
                input_type=InputType.TEXT,
                iterations=result.iterations,
            )
        )

        await self._conversations.increment_message_count(conversation.id)

        if first_exchange:
            await self._conversations.update_title(
                conversation.id, generate_conversation_title(request.content)
            )

        charged = await self._quota.deduct_usage(identity)
        logger.info(
            f"Generated reply in conversation {conversation.id} "
            f"({result.tokens} tokens, charged to {charged.value if charged else 'nothing'})"
        )

        quota_remaining = await self._quota.get_quota_snapshot(identity)
        return SendMessageResult(
            user_message=user_message,
            assistant_message=assistant_message,
            quota_remaining=quota_remaining,
        )

    async def get_conversation_messages(
        self,
        conversation_id: str,
        identity: RequestIdentity,
    ) -> List[ChatMessage]:
        await self._load_owned(conversation_id, identity)
        return await self._messages.list_by_conversation(conversation_id)

    async def _load_owned(self, conversation_id: str, identity: RequestIdentity) -> Conversation:
        conversation = await self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation")
        if not can_access(conversation, identity):
            raise ForbiddenError("You don't have access to this conversation")
        return conversation
