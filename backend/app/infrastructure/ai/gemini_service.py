"""
Gemini Text Generator for EchoWrite

Uses the google.genai SDK's async client. Prior turns are sent as
``user`` / ``model`` contents and the system prompt as
``system_instruction``.
"""

import logging
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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


class GeminiTextGenerator(TextGenerator):
    """Generator backed by Google Gemini."""

    name = "gemini"

    TEMPERATURE = 0.7

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        max_tokens: int = 800,
        critique_max_tokens: int = 200,
        client: Optional[genai.Client] = None,
    ):
        if client is None and not api_key:
            raise ConfigurationError(
                "GOOGLE_API_KEY or GEMINI_API_KEY required when LLM_PROVIDER=gemini",
                missing_keys=["GOOGLE_API_KEY"],
            )
        self._client = client or genai.Client(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._critique_max_tokens = critique_max_tokens

    @staticmethod
    def _to_content(role: str, text: str) -> types.Content:
        # Gemini names the assistant role "model"
        gemini_role = "model" if role == "assistant" else "user"
        return types.Content(role=gemini_role, parts=[types.Part(text=text)])

    async def generate(
        self,
        prompt: str,
        history: List[ChatTurn],
        language: Optional[str] = None,
    ) -> str:
        contents = [self._to_content(turn.role, turn.content) for turn in history]
        contents.append(self._to_content("user", prompt))
        return await self._complete(
            contents,
            GENERATION_SYSTEM_PROMPT + language_instruction(language),
            self._max_tokens,
            "generate",
        )

    async def critique(self, text: str, language: Optional[str] = None) -> str:
        contents = [self._to_content("user", CRITIQUE_REQUEST.format(post=text))]
        return await self._complete(
            contents,
            CRITIQUE_SYSTEM_PROMPT,
            self._critique_max_tokens,
            "critique",
        )

    async def _complete(
        self,
        contents: List[types.Content],
        system_instruction: str,
        max_tokens: int,
        operation: str,
    ) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    temperature=self.TEMPERATURE,
                    max_output_tokens=max_tokens,
                ),
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini {operation} failed: {e}")
            raise AIServiceError(
                f"Text generation failed: {e}",
                model=self._model,
                operation=operation,
                original_error=e,
            )

        if not response.text:
            raise AIServiceError(
                "Empty response from Gemini",
                model=self._model,
                operation=operation,
            )
        return response.text
