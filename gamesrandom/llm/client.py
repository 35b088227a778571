"""Anthropic chat model behind two calls.

complete_once awaits a full completion; complete_streaming reports every
text delta through a callback as it arrives. Both mark the system prompt
as cacheable so repeated calls with the same prefix hit the prompt cache.
Provider and transport errors surface as ModelCallFailed; nothing is
retried here.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import anthropic
import httpx
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from gamesrandom.errors import ModelCallFailed
from gamesrandom.schemas import ChunkEvent

if TYPE_CHECKING:
    from collections.abc import Callable

    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

PROGRESS_LOG_EVERY = 50


@dataclass
class UsageMetrics:
    """Token counters from one completion. Observability only."""

    output_tokens: int = 0
    cache_creation_tokens: int | None = None
    cache_read_tokens: int | None = None
    truncated: bool = False


@dataclass
class Completion:
    text: str
    usage: UsageMetrics = field(default_factory=UsageMetrics)
    elapsed: float = 0.0
    chunk_count: int = 0

    @property
    def truncated(self) -> bool:
        return self.usage.truncated


def _extract_text(content) -> str:
    """Normalize message content. Anthropic can return a list of blocks or a string.

    Only text blocks are kept, concatenated in order.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def _usage_from_message(message: BaseMessage | None) -> UsageMetrics:
    if message is None:
        return UsageMetrics()

    usage = getattr(message, "usage_metadata", None) or {}
    details = usage.get("input_token_details") or {}
    metadata = getattr(message, "response_metadata", None) or {}
    raw_usage = metadata.get("usage") or {}

    cache_creation = details.get("cache_creation")
    if cache_creation is None:
        cache_creation = raw_usage.get("cache_creation_input_tokens")
    cache_read = details.get("cache_read")
    if cache_read is None:
        cache_read = raw_usage.get("cache_read_input_tokens")

    return UsageMetrics(
        output_tokens=usage.get("output_tokens") or raw_usage.get("output_tokens") or 0,
        cache_creation_tokens=cache_creation,
        cache_read_tokens=cache_read,
        truncated=metadata.get("stop_reason") == "max_tokens",
    )


def _log_usage(usage: UsageMetrics) -> None:
    logger.info(f"Tokens used: {usage.output_tokens} output")
    if usage.cache_creation_tokens:
        logger.info(f"Cache created: {usage.cache_creation_tokens} tokens")
    if usage.cache_read_tokens:
        logger.info(f"Cache hit: {usage.cache_read_tokens} tokens")
    if usage.truncated:
        logger.warning(
            "Response may be incomplete (hit token limit); "
            "consider raising max_tokens or simplifying the request"
        )


class ModelClient:
    """Anthropic chat model with a cacheable system prompt."""

    def __init__(
        self,
        model: str,
        max_tokens: int,
        llm: BaseChatModel | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        """Create the Anthropic LLM on first use."""
        if self._llm is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ModelCallFailed("ANTHROPIC_API_KEY environment variable is not set")
            self._llm = ChatAnthropic(
                model=self.model, max_tokens=self.max_tokens, api_key=api_key
            )
        return self._llm

    @staticmethod
    def _build_messages(system_prompt: str, user_message: str) -> list[BaseMessage]:
        system = SystemMessage(
            content=[
                {
                    "type": "text",
                    "text": system_prompt,
                    "cache_control": {"type": "ephemeral"},
                }
            ]
        )
        return [system, HumanMessage(content=user_message)]

    async def complete_once(self, system_prompt: str, user_message: str) -> Completion:
        """Send one request and wait for the whole completion."""
        logger.info(
            f"System prompt: {len(system_prompt)} chars, "
            f"user message: {len(user_message)} chars"
        )
        llm = self._get_llm()
        messages = self._build_messages(system_prompt, user_message)

        start = time.perf_counter()
        try:
            response = await llm.ainvoke(messages)
        except (anthropic.APIError, httpx.HTTPError) as e:
            logger.error(f"Model call failed: {e}")
            raise ModelCallFailed(str(e)) from e
        elapsed = time.perf_counter() - start

        usage = _usage_from_message(response)
        logger.info(f"Model API time: {elapsed:.2f}s")
        _log_usage(usage)

        return Completion(
            text=_extract_text(response.content),
            usage=usage,
            elapsed=elapsed,
        )

    async def complete_streaming(
        self,
        system_prompt: str,
        user_message: str,
        on_chunk: Callable[[ChunkEvent], None],
    ) -> Completion:
        """Stream a completion, calling on_chunk for every text delta in order.

        Chunk numbers start at 1. No terminal event is emitted here; the
        caller decides what completion means once this returns.
        """
        logger.info(
            f"System prompt: {len(system_prompt)} chars, "
            f"user message: {len(user_message)} chars"
        )
        llm = self._get_llm()
        messages = self._build_messages(system_prompt, user_message)

        full_text = ""
        chunk_count = 0
        aggregate = None

        start = time.perf_counter()
        try:
            async for chunk in llm.astream(messages):
                aggregate = chunk if aggregate is None else aggregate + chunk

                delta = _extract_text(chunk.content)
                if not delta:
                    continue

                full_text += delta
                chunk_count += 1
                on_chunk(ChunkEvent(text=delta, full=full_text, chunkNumber=chunk_count))

                if chunk_count % PROGRESS_LOG_EVERY == 0:
                    logger.info(f"Streamed {chunk_count} chunks...")
        except (anthropic.APIError, httpx.HTTPError) as e:
            logger.error(f"Streaming model call failed after {chunk_count} chunks: {e}")
            raise ModelCallFailed(str(e)) from e
        elapsed = time.perf_counter() - start

        usage = _usage_from_message(aggregate)
        logger.info(f"Stream finished: {chunk_count} chunks in {elapsed:.2f}s")
        _log_usage(usage)

        return Completion(
            text=full_text,
            usage=usage,
            elapsed=elapsed,
            chunk_count=chunk_count,
        )
