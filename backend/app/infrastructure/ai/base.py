"""
Text Generation Provider Interface

Every provider implements two calls: write (or rewrite) a post given
the running conversation, and critique a finished draft.
"""

from abc import ABC, abstractmethod
from typing import List, Literal, Optional

from pydantic import BaseModel


GENERATION_SYSTEM_PROMPT = """You are a professional social media content creator and copywriter. Your task is to create engaging, human-written social media posts that sound natural and authentic.

Key guidelines:
- Write in a conversational, human tone
- Create longer, more detailed posts (aim for 3-5 paragraphs)
- Focus on storytelling and providing value
- Avoid excessive emojis (use sparingly, maximum 1-2 per post)
- Make content that people would actually want to read and share
- Include actionable insights or tips when relevant
- Write as if you're a knowledgeable expert sharing insights with your audience

Generate the best social media post possible for the user's request. If the user provides critique, respond with a revised version of your previous attempts."""

CRITIQUE_SYSTEM_PROMPT = """You are a professional social media strategist and content reviewer. Your task is to provide constructive feedback and recommendations for social media posts.

Key guidelines:
- Provide detailed, actionable feedback
- Focus on engagement, clarity, and value
- Suggest improvements for length, tone, and structure
- Recommend ways to make content more shareable
- Consider the target audience and platform best practices
- Be specific about what works and what could be improved
- Suggest alternative approaches or angles

Generate comprehensive critique and recommendations for the user's post."""

CRITIQUE_REQUEST = "Critique this tweet and provide feedback: {post}"


class ChatTurn(BaseModel):
    """One prior turn handed back to the provider as context."""

    model_config = {"frozen": True}

    role: Literal["user", "assistant"]
    content: str


def language_instruction(language: Optional[str]) -> str:
    """Extra system line pinning the output language."""
    if not language or language.lower() == "english":
        return ""
    return f"\n\nWrite the post in {language}."


class TextGenerator(ABC):
    """Abstract base class for text generation providers.

    Implementations must raise ``AIServiceError`` for any SDK failure or
    empty completion; the generation cycle never retries.
    """

    name: str = "base"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        history: List[ChatTurn],
        language: Optional[str] = None,
    ) -> str:
        """Write a post for ``prompt`` with ``history`` as prior turns."""
        pass

    @abstractmethod
    async def critique(self, text: str, language: Optional[str] = None) -> str:
        """Return feedback on a finished draft."""
        pass
