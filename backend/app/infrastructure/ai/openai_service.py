"""
OpenAI Text Generator for EchoWrite

Chat-completions backed implementation of TextGenerator. Requires
OPENAI_API_KEY; the default model is gpt-4o-mini.
"""

import logging
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from app.infrastructure.ai.base import (
    CRITIQUE_REQUEST,
    CRITIQUE_SYSTEM_PROMPT,
    GENERATION_SYSTEM_PROMPT,
    ChatTurn,
    TextGenerator,
    language_instruction,
)
from app.infrastructure.exceptions import AIServiceError, ConfigurationError


logger = logging.getLogger(__name__)


class OpenAITextGenerator(TextGenerator):
    """Generator backed by OpenAI chat completions.

    Args:
        api_key: OpenAI API key
        model: Chat model id
        temperature: Sampling temperature for both calls
        max_tokens: Completion cap for post generation
        critique_max_tokens: Completion cap for critiques
        client: Pre-built client (tests)
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 800,
        critique_max_tokens: int = 200,
        client: Optional[AsyncOpenAI] = None,
    ):
        if client is None and not api_key:
            raise ConfigurationError(
                "OpenAI API key is required when LLM_PROVIDER=openai",
                missing_keys=["OPENAI_API_KEY"],
            )
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._critique_max_tokens = critique_max_tokens

    async def generate(
        self,
        prompt: str,
        history: List[ChatTurn],
        language: Optional[str] = None,
    ) -> str:
        messages = [{"role": "system", "content": GENERATION_SYSTEM_PROMPT + language_instruction(language)}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": prompt})
        return await self._complete(messages, self._max_tokens, "generate")

    async def critique(self, text: str, language: Optional[str] = None) -> str:
        messages = [
            {"role": "system", "content": CRITIQUE_SYSTEM_PROMPT},
            {"role": "user", "content": CRITIQUE_REQUEST.format(post=text)},
        ]
        return await self._complete(messages, self._critique_max_tokens, "critique")

    async def _complete(self, messages: list[dict], max_tokens: int, operation: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI {operation} failed: {e}")
            raise AIServiceError(
                f"Text generation failed: {e}",
                model=self._model,
                operation=operation,
                original_error=e,
            )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIServiceError(
                "Empty response from OpenAI",
                model=self._model,
                operation=operation,
            )
        return content
