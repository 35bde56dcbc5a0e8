"""
Conversation API Routes

CRUD for conversations owned by the calling user or anonymous session.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from app.api.dependencies import ConversationServiceDep, IdentityDep
from app.api.responses import success_response
from app.domain.chat import CreateConversationRequest, UpdateConversationRequest
from app.infrastructure.services.conversation_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


router = APIRouter(prefix="/conversations")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(
    identity: IdentityDep,
    conversations: ConversationServiceDep,
    body: Optional[CreateConversationRequest] = None,
):
    conversation = await conversations.create_conversation(identity, title=body.title if body else None)
    return success_response(conversation)


@router.get("")
async def list_conversations(
    identity: IdentityDep,
    conversations: ConversationServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
):
    result = await conversations.list_conversations(identity, page=page, limit=limit, search=search)
    return success_response(result)


@router.get("/{conversation_id}")
async def get_conversation(conversation_id: str, identity: IdentityDep, conversations: ConversationServiceDep):
    return success_response(await conversations.get_conversation(conversation_id, identity))


@router.patch("/{conversation_id}")
async def rename_conversation(
    conversation_id: str,
    body: UpdateConversationRequest,
    identity: IdentityDep,
    conversations: ConversationServiceDep,
):
    conversation = await conversations.rename_conversation(conversation_id, identity, body.title)
    return success_response(conversation)


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, identity: IdentityDep, conversations: ConversationServiceDep):
    await conversations.delete_conversation(conversation_id, identity)
    return success_response(message="Conversation deleted")
