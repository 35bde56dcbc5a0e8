"""
Chat Domain Models for EchoWrite

Pure Python/Pydantic models for conversations, messages and the
generation trace attached to assistant replies.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CONVERSATION_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 50


class MessageRole(str, Enum):
    """Role of the message sender."""
    USER = "user"
    ASSISTANT = "assistant"


class InputType(str, Enum):
    """How the user produced the prompt on the client."""
    TEXT = "text"
    VOICE = "voice"


# =============================================================================
# Identity
# =============================================================================

class RequestIdentity(BaseModel):
    """
    Who is calling: a user, an anonymous session, or both.

    When both are present the user id wins everywhere ownership or quota
    is decided.
    """
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


# =============================================================================
# Entities
# =============================================================================

class Conversation(BaseModel):
    """Conversation owned by a user XOR an anonymous session."""
    id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    title: str = DEFAULT_CONVERSATION_TITLE
    is_anonymous: bool = False
    message_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GenerationIteration(BaseModel):
    """One generate/critique round."""
    generation: str
    reflection: str


class GenerationResult(BaseModel):
    final_post: str
    iterations: List[GenerationIteration]
    tokens: int


class ChatMessage(BaseModel):
    """Append-only message entity."""
    id: str
    conversation_id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    role: MessageRole
    content: str
    tokens: Optional[int] = None
    language: str = "english"
    input_type: InputType = InputType.TEXT
    iterations: Optional[List[GenerationIteration]] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChatMessageCreate(BaseModel):
    """Schema for creating a new chat message."""
    conversation_id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    role: MessageRole
    content: str = Field(..., min_length=1)
    tokens: Optional[int] = None
    language: str = "english"
    input_type: InputType = InputType.TEXT
    iterations: Optional[List[GenerationIteration]] = None


class ConversationCreate(BaseModel):
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    title: str = DEFAULT_CONVERSATION_TITLE
    is_anonymous: bool = False


class ConversationPage(BaseModel):
    """One page of a conversation listing."""
    conversations: List[Conversation]
    total: int
    page: int
    total_pages: int
    has_more: bool


# =============================================================================
# Request DTOs
# =============================================================================

class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    language: str = Field(default="english", max_length=50)
    input_type: InputType = InputType.TEXT


class DirectMessageRequest(SendMessageRequest):
    """Send-message body that names its conversation."""
    conversation_id: str = Field(..., min_length=1)


class CreateConversationRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=255)


class UpdateConversationRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


# =============================================================================
# Rules
# =============================================================================

def can_access(conversation: Conversation, identity: RequestIdentity) -> bool:
    """Only the owning user or the owning session may touch a conversation."""
    if identity.user_id and conversation.user_id == identity.user_id:
        return True
    if identity.session_id and conversation.session_id == identity.session_id:
        return True
    return False


def generate_conversation_title(message: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """Title from the first user message, ellipsised when truncated."""
    trimmed = message.strip()
    if len(trimmed) <= max_length:
        return trimmed
    return trimmed[:max_length] + "..."


def estimate_tokens(text: str) -> int:
    # ~4 characters per token; a cheap proxy, not a tokenizer
    return math.ceil(len(text) / 4)
