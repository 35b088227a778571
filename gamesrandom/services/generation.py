"""Game generation — prompt selection, model call, cleanup, context update.

Per call: pick the library's system prompt, await the model (one-shot or
streamed), sanitize the text, store it as the assistant's context and hand
it back. A failed model call leaves the context untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gamesrandom.errors import ModelCallFailed
from gamesrandom.sanitizer import sanitize
from gamesrandom.schemas import CompleteEvent, ErrorEvent

if TYPE_CHECKING:
    from collections.abc import Callable

    from gamesrandom.context_cache import GenerationContextCache
    from gamesrandom.llm.client import ModelClient, UsageMetrics
    from gamesrandom.prompts import PromptStore
    from gamesrandom.schemas import StreamEvent

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    code: str
    library: str
    truncated: bool
    usage: UsageMetrics
    elapsed: float


class GameGenerator:
    def __init__(
        self,
        prompts: PromptStore,
        client: ModelClient,
        context: GenerationContextCache,
    ):
        self.prompts = prompts
        self.client = client
        self.context = context

    async def generate(self, description: str, library: str | None = None) -> GenerationResult:
        """Generate a game in one request and return the cleaned code."""
        library = self.prompts.resolve(library)
        system_prompt = self.prompts.system_prompt_for(library)
        logger.info(f"Generating {library} game")

        completion = await self.client.complete_once(system_prompt, description)

        clean_code = sanitize(completion.text)
        self.context.set(clean_code)

        return GenerationResult(
            code=clean_code,
            library=library,
            truncated=completion.truncated,
            usage=completion.usage,
            elapsed=completion.elapsed,
        )

    async def generate_streaming(
        self,
        description: str,
        library: str | None,
        on_event: Callable[[StreamEvent], None],
    ) -> GenerationResult:
        """Generate a game while forwarding every chunk to on_event.

        Ends with exactly one terminal event: ``complete`` with the cleaned
        code, or ``error`` if the model call fails. On failure the error is
        also raised to the caller after the event has been sent.
        """
        library = self.prompts.resolve(library)
        system_prompt = self.prompts.system_prompt_for(library)
        logger.info(f"Streaming {library} game generation")

        try:
            completion = await self.client.complete_streaming(
                system_prompt, description, on_event
            )
        except ModelCallFailed as e:
            logger.error(f"Streaming error: {e.message}")
            on_event(ErrorEvent(error=e.message))
            raise

        clean_code = sanitize(completion.text)
        on_event(
            CompleteEvent(
                code=clean_code,
                totalTime=f"{completion.elapsed:.2f}",
                chunks=completion.chunk_count,
                tokens=completion.usage.output_tokens,
                truncated=completion.truncated,
            )
        )
        self.context.set(clean_code)

        return GenerationResult(
            code=clean_code,
            library=library,
            truncated=completion.truncated,
            usage=completion.usage,
            elapsed=completion.elapsed,
        )
