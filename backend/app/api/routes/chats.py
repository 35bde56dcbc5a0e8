"""
Chat Routes for EchoWrite

Send a prompt through the generation cycle, read a conversation's
messages, and report quota usage.
"""

from fastapi import APIRouter, status

from app.api.dependencies import ChatServiceDep, IdentityDep, QuotaServiceDep
from app.api.responses import success_response
from app.domain.chat import DirectMessageRequest, SendMessageRequest


router = APIRouter(prefix="/chat")


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: str,
    body: SendMessageRequest,
    identity: IdentityDep,
    chat: ChatServiceDep,
):
    """
    Generate a post for ``body.content`` in the given conversation.

    Returns the stored user and assistant messages plus the quota left
    after this generation was charged.
    """
    result = await chat.send_message(conversation_id, identity, body)
    return success_response(result)


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def send_direct_message(body: DirectMessageRequest, identity: IdentityDep, chat: ChatServiceDep):
    result = await chat.send_message(body.conversation_id, identity, body)
    return success_response(result)


@router.get("/conversations/{conversation_id}/messages")
async def get_messages(conversation_id: str, identity: IdentityDep, chat: ChatServiceDep):
    messages = await chat.get_conversation_messages(conversation_id, identity)
    return success_response(messages)


@router.get("/usage")
@router.get("/quota")
async def get_usage(identity: IdentityDep, quota: QuotaServiceDep):
    return success_response(await quota.get_usage_stats(identity))
