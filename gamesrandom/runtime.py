"""Runtime — bridges HTTP requests to the generation services.

Validates request bodies before any model call and turns the streaming
generator's event callbacks into an SSE frame stream.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from gamesrandom.errors import InputValidationError, ModelCallFailed
from gamesrandom.schemas import TERMINAL_EVENT_TYPES, ErrorEvent

if TYPE_CHECKING:
    from gamesrandom.config import AppConfig
    from gamesrandom.schemas import (
        ChatRequest,
        GenerateRequest,
        SaveGameRequest,
        StreamEvent,
    )
    from gamesrandom.services.generation import GameGenerator

logger = logging.getLogger(__name__)


def _invalid_library_message(config: AppConfig) -> str:
    choices = " or ".join(f'"{lib}"' for lib in config.supported_libraries())
    return f"Invalid library. Must be either {choices}."


def normalize_library(library: str | None, config: AppConfig) -> str:
    """Lower-case the library, defaulting it when absent.

    Raises InputValidationError for a library that is not configured.
    """
    normalized = (library or "").strip().lower() or config.default_library
    if normalized not in config.libraries:
        raise InputValidationError(_invalid_library_message(config))
    return normalized


def validate_generate_request(body: GenerateRequest, config: AppConfig) -> tuple[str, str]:
    """Check a generation request. Returns (description, library)."""
    if not body.description:
        raise InputValidationError(
            "Description is required. Please describe the game you want to create."
        )
    if len(body.description.strip()) < config.min_description_length:
        raise InputValidationError(
            "Description is too short. Please provide more details."
        )
    return body.description, normalize_library(body.library, config)


def validate_chat_request(body: ChatRequest) -> str:
    """Check a chat request. Returns the user message."""
    if not body.message or not body.message.strip():
        raise InputValidationError("Message is required.")
    if not body.gameCode or not body.library:
        raise InputValidationError(
            "Game code and library information are required."
        )
    return body.message


def validate_save_request(body: SaveGameRequest, config: AppConfig) -> SaveGameRequest:
    """Check a save-game request. Returns a copy with the library normalized."""
    if not (body.title and body.description and body.code and body.library):
        raise InputValidationError("Missing required fields")
    return body.model_copy(update={"library": normalize_library(body.library, config)})


def format_sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.model_dump())}\n\n"


async def stream_generation(
    generator: GameGenerator,
    description: str,
    library: str,
) -> AsyncGenerator[str, None]:
    """Run a streaming generation and yield its events as SSE frames.

    The generator runs as a producer task pushing events into a queue;
    this consumer yields them until the first terminal event. If the
    client goes away, the producer task is cancelled.
    """
    queue: asyncio.Queue[StreamEvent] = asyncio.Queue()

    async def produce() -> None:
        try:
            await generator.generate_streaming(description, library, queue.put_nowait)
        except ModelCallFailed:
            pass  # already delivered as an error event
        except Exception as e:
            logger.error(f"Streaming generation crashed: {e}", exc_info=True)
            queue.put_nowait(ErrorEvent(error=str(e)))

    producer = asyncio.create_task(produce())
    try:
        while True:
            event = await queue.get()
            yield format_sse(event)
            if event.type in TERMINAL_EVENT_TYPES:
                break
        await producer
    finally:
        if not producer.done():
            logger.info("Client disconnected, cancelling generation")
            producer.cancel()
