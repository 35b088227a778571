"""Code assistant — answers questions about the last generated game."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gamesrandom.context_cache import GenerationContextCache
    from gamesrandom.llm.client import ModelClient
    from gamesrandom.prompts import PromptStore

logger = logging.getLogger(__name__)


class CodeAssistant:
    def __init__(
        self,
        prompts: PromptStore,
        client: ModelClient,
        context: GenerationContextCache,
    ):
        self.prompts = prompts
        self.client = client
        self.context = context

    def build_system_prompt(self) -> str:
        """Assistant template followed by the most recently generated code."""
        return self.prompts.assistant_template + self.context.get()

    async def chat(
        self,
        user_message: str,
        game_code: str | None = None,
        library: str | None = None,
    ) -> str:
        """Reply to user_message.

        game_code and library are accepted for client compatibility only;
        the prompt is always built from the shared generation context.
        """
        logger.info("Code assistant request received")
        completion = await self.client.complete_once(self.build_system_prompt(), user_message)
        return completion.text.strip()
