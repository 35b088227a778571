"""
Test helpers: stand-ins for the Anthropic chat model and the model client.
"""

import json

from langchain_core.messages import AIMessage, AIMessageChunk

from gamesrandom.errors import ModelCallFailed
from gamesrandom.llm.client import Completion, UsageMetrics
from gamesrandom.schemas import ChunkEvent

P5JS_PROMPT = "You write p5.js games. Output only JavaScript.\n"
PHASER_PROMPT = "You write Phaser 3 games. Output only JavaScript.\n"
ASSISTANT_PROMPT = "You help users edit their game. Current code:\n"


class FakeChatModel:
    """Mimics the parts of ChatAnthropic the model client uses."""

    def __init__(self, response=None, chunks=None, error=None, fail_after=None):
        self.response = response
        self.chunks = chunks or []
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.response

    async def astream(self, messages):
        self.calls.append(messages)
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise self.error
            yield chunk
        if self.error is not None and self.fail_after is None:
            raise self.error


def ai_message(text, output_tokens=12, stop_reason="end_turn", cache_creation=None, cache_read=None):
    details = {}
    if cache_creation is not None:
        details["cache_creation"] = cache_creation
    if cache_read is not None:
        details["cache_read"] = cache_read
    return AIMessage(
        content=text,
        usage_metadata={
            "input_tokens": 40,
            "output_tokens": output_tokens,
            "total_tokens": 40 + output_tokens,
            "input_token_details": details,
        },
        response_metadata={"stop_reason": stop_reason},
    )


def stream_chunks(deltas, output_tokens=30, stop_reason="end_turn", cache_read=None):
    """Chunks shaped like a ChatAnthropic stream: a usage-only start,
    the text deltas, then a closing chunk with the stop reason."""
    details = {"cache_read": cache_read} if cache_read is not None else {}
    chunks = [
        AIMessageChunk(
            content="",
            usage_metadata={
                "input_tokens": 40,
                "output_tokens": 0,
                "total_tokens": 40,
                "input_token_details": details,
            },
        )
    ]
    chunks.extend(AIMessageChunk(content=delta) for delta in deltas)
    chunks.append(
        AIMessageChunk(
            content="",
            usage_metadata={
                "input_tokens": 0,
                "output_tokens": output_tokens,
                "total_tokens": output_tokens,
            },
            response_metadata={"stop_reason": stop_reason},
        )
    )
    return chunks


class StubModelClient:
    """Replaces ModelClient in service and HTTP tests. Records every call."""

    def __init__(self, text="", deltas=None, truncated=False, error=None, fail_after=None):
        self.text = text
        self.deltas = deltas if deltas is not None else [text]
        self.truncated = truncated
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    async def complete_once(self, system_prompt, user_message):
        self.calls.append((system_prompt, user_message))
        if self.error:
            raise ModelCallFailed(self.error)
        return Completion(
            text=self.text,
            usage=UsageMetrics(output_tokens=21, truncated=self.truncated),
            elapsed=0.25,
        )

    async def complete_streaming(self, system_prompt, user_message, on_chunk):
        self.calls.append((system_prompt, user_message))
        full = ""
        for i, delta in enumerate(self.deltas, start=1):
            if self.error and self.fail_after is not None and i > self.fail_after:
                break
            full += delta
            on_chunk(ChunkEvent(text=delta, full=full, chunkNumber=i))
        if self.error:
            raise ModelCallFailed(self.error)
        return Completion(
            text=full,
            usage=UsageMetrics(output_tokens=len(self.deltas), truncated=self.truncated),
            elapsed=1.5,
            chunk_count=len(self.deltas),
        )


def parse_sse(body):
    """Decode the JSON payloads of every `data:` frame in an SSE body."""
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]
