"""Request/response models: the contract between the service and the browser."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Body of /api/generate and /api/generate-stream.

    Fields are optional here so the web layer can answer with its own
    validation messages instead of a generic 422.
    """

    description: str | None = None
    library: str | None = None


class GenerateResponse(BaseModel):
    success: bool = True
    code: str
    library: str
    truncated: bool | None = None  # only sent when the token ceiling was hit


class ChatRequest(BaseModel):
    """Body of /api/chat. gameCode and library are accepted but the
    assistant always answers against the last generated game."""

    message: str | None = None
    gameCode: str | None = None
    library: str | None = None


class ChatResponse(BaseModel):
    success: bool = True
    reply: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class ChunkEvent(BaseModel):
    """One text delta from the model, with the cumulative text so far."""

    type: Literal["chunk"] = "chunk"
    text: str
    full: str
    chunkNumber: int


class CompleteEvent(BaseModel):
    """Terminal event carrying the sanitized code and run metrics."""

    type: Literal["complete"] = "complete"
    code: str
    totalTime: str   # seconds, two decimals
    chunks: int
    tokens: int
    truncated: bool = False


class ErrorEvent(BaseModel):
    """Terminal event sent when the model call fails mid-stream."""

    type: Literal["error"] = "error"
    error: str


StreamEvent = ChunkEvent | CompleteEvent | ErrorEvent

TERMINAL_EVENT_TYPES = ("complete", "error")


# ---------------------------------------------------------------------------
# Saved games
# ---------------------------------------------------------------------------


class SaveGameRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    code: str | None = None
    library: str | None = None


class GameRecord(BaseModel):
    id: str
    title: str
    description: str
    code: str
    library: str
    createdAt: datetime
    updatedAt: datetime | None = None


class SaveGameResponse(BaseModel):
    success: bool = True
    game: GameRecord


class GameListResponse(BaseModel):
    success: bool = True
    games: list[GameRecord] = Field(default_factory=list)


class DeleteGameResponse(BaseModel):
    success: bool = True
    message: str = "Game deleted successfully"
