"""
Generation Cycle Engine for EchoWrite

Runs the fixed generate -> critique loop that turns one user prompt into
a final post plus a reviewable trace of every round.

Round 1 writes from the raw prompt. Later rounds ask the provider to
improve its last draft, with each earlier draft (assistant turn) and its
critique (user turn) carried forward as history. The loop never stops
early; any provider failure aborts the whole cycle.
"""

import asyncio
import logging
from typing import List, Optional

from app.config.settings import Settings
from app.domain.chat import GenerationIteration, GenerationResult, estimate_tokens
from app.infrastructure.ai.base import ChatTurn, TextGenerator


logger = logging.getLogger(__name__)


GENERATION_ROUNDS = 3
IMPROVE_INSTRUCTION = "Improve based on the feedback"


class GenerationCycleEngine:
    """
    Orchestrates the generate/critique rounds against a TextGenerator.

    Args:
        generator: Provider that writes and critiques posts
        rounds: Number of rounds (3 in production)
        delay_seconds: Pause before every provider call, to pace upstream usage
    """

    def __init__(
        self,
        generator: TextGenerator,
        rounds: int = GENERATION_ROUNDS,
        delay_seconds: float = 0.0,
    ):
        self._generator = generator
        self._rounds = rounds
        self._delay_seconds = delay_seconds

    async def _pause(self) -> None:
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

    async def run(self, user_input: str, language: Optional[str] = None) -> GenerationResult:
        """
        Produce the final post for ``user_input``.

        Returns:
            GenerationResult with the last round's draft, every round's
            draft and critique, and a character-based token estimate.

        Raises:
            AIServiceError: propagated unchanged from the provider
        """
        iterations: List[GenerationIteration] = []
        history: List[ChatTurn] = []
        current = ""

        for round_index in range(self._rounds):
            prompt = user_input if round_index == 0 else IMPROVE_INSTRUCTION

            await self._pause()
            current = await self._generator.generate(prompt, list(history), language)

            await self._pause()
            reflection = await self._generator.critique(current, language)

            iterations.append(GenerationIteration(generation=current, reflection=reflection))
            history.append(ChatTurn(role="assistant", content=current))
            history.append(ChatTurn(role="user", content=reflection))

        trace_text = " ".join(
            text for it in iterations for text in (it.generation, it.reflection)
        )
        tokens = estimate_tokens(trace_text) + estimate_tokens(user_input)

        logger.info(
            f"Generation cycle finished via {self._generator.name}: "
            f"{len(iterations)} rounds, ~{tokens} tokens"
        )
        return GenerationResult(final_post=current, iterations=iterations, tokens=tokens)


def create_text_generator(settings: Settings) -> TextGenerator:
    """Build the provider selected by LLM_PROVIDER."""
    if settings.llm_provider == "gemini":
        from app.infrastructure.ai.gemini_service import GeminiTextGenerator

        return GeminiTextGenerator(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            max_tokens=settings.generation_max_tokens,
            critique_max_tokens=settings.critique_max_tokens,
        )

    from app.infrastructure.ai.openai_service import OpenAITextGenerator

    return OpenAITextGenerator(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
        critique_max_tokens=settings.critique_max_tokens,
    )


def create_generation_engine(settings: Settings) -> GenerationCycleEngine:
    return GenerationCycleEngine(
        create_text_generator(settings),
        rounds=GENERATION_ROUNDS,
        delay_seconds=settings.generation_delay_seconds,
    )
