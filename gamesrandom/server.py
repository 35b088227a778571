"""games.random — FastAPI app factory.

Exposes one-shot and SSE streaming game generation, the code assistant,
saved games per user, and operational endpoints. Prompts are read while
the app is built; a missing prompt file stops startup.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from gamesrandom.config import AppConfig, get_config
from gamesrandom.context_cache import GenerationContextCache
from gamesrandom.errors import InputValidationError, ModelCallFailed
from gamesrandom.llm.client import ModelClient
from gamesrandom.prompts import load_prompts
from gamesrandom.runtime import (
    stream_generation,
    validate_chat_request,
    validate_generate_request,
    validate_save_request,
)
from gamesrandom.schemas import (
    ChatRequest,
    ChatResponse,
    DeleteGameResponse,
    ErrorResponse,
    GameListResponse,
    GenerateRequest,
    GenerateResponse,
    SaveGameRequest,
    SaveGameResponse,
)
from gamesrandom.services.assistant import CodeAssistant
from gamesrandom.services.generation import GameGenerator
from gamesrandom.storage import GameStore

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Auth dependencies
# ---------------------------------------------------------------------------


async def verify_api_key(request: Request) -> None:
    """Validate X-API-Key header against the configured key.
    If no api_key is set in config, the check is disabled (dev mode).
    """
    config: AppConfig = request.app.state.config
    if not config.api_key:
        return

    key = request.headers.get("X-API-Key")
    if key != config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def current_user_id(request: Request) -> str:
    """Authenticated user id, supplied by the identity proxy in X-User-Id."""
    user_id = request.headers.get("X-User-Id", "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


# ---------------------------------------------------------------------------
# Generation endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/api/generate",
    response_model=GenerateResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_api_key)],
)
async def generate(body: GenerateRequest, request: Request):
    """Generate game code in a single request."""
    description, library = validate_generate_request(body, request.app.state.config)
    logger.info(f"Request: generate {library} game: {description!r}")

    start = time.perf_counter()
    result = await request.app.state.generator.generate(description, library)
    logger.info(f"Game generated in {time.perf_counter() - start:.2f}s")

    return GenerateResponse(
        code=result.code,
        library=result.library,
        truncated=True if result.truncated else None,
    )


@router.post("/api/generate-stream", dependencies=[Depends(verify_api_key)])
async def generate_stream(body: GenerateRequest, request: Request):
    """Generate game code, streaming chunks as Server-Sent Events.

    Input errors are answered with a plain 400 before the stream opens.
    """
    description, library = validate_generate_request(body, request.app.state.config)
    logger.info(f"Streaming request: {library} - {description!r}")

    return StreamingResponse(
        stream_generation(request.app.state.generator, description, library),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/api/chat", response_model=ChatResponse, dependencies=[Depends(verify_api_key)])
async def chat(body: ChatRequest, request: Request):
    """Ask the code assistant about the last generated game."""
    message = validate_chat_request(body)
    logger.info(f"Chat request for {body.library} game")

    reply = await request.app.state.assistant.chat(message, body.gameCode, body.library)
    return ChatResponse(reply=reply)


# ---------------------------------------------------------------------------
# Saved games
# ---------------------------------------------------------------------------


@router.post("/api/save-game", response_model=SaveGameResponse)
def save_game(
    body: SaveGameRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    body = validate_save_request(body, request.app.state.config)
    game = request.app.state.store.create(
        user_id, body.title, body.description, body.code, body.library
    )
    return SaveGameResponse(game=game)


@router.get("/api/my-games", response_model=GameListResponse)
def my_games(request: Request, user_id: str = Depends(current_user_id)):
    """Games saved by the current user, newest first."""
    return GameListResponse(games=request.app.state.store.list_for_owner(user_id))


@router.delete("/api/games/{game_id}", response_model=DeleteGameResponse)
def delete_game(game_id: str, request: Request, user_id: str = Depends(current_user_id)):
    deleted = request.app.state.store.delete_for_owner(user_id, game_id)
    if deleted is None:
        raise HTTPException(
            status_code=404,
            detail="Game not found or you do not have permission to delete it",
        )
    return DeleteGameResponse()


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request):
    """Liveness check."""
    return {
        "status": "healthy",
        "libraries": request.app.state.prompts.libraries(),
    }


@router.get("/api")
async def api_status(request: Request):
    """Server status and the list of available endpoints."""
    config: AppConfig = request.app.state.config
    return {
        "status": "running",
        "model": config.model,
        "auth": "enabled" if config.api_key else "disabled",
        "libraries": request.app.state.prompts.libraries(),
        "endpoints": [
            "POST /api/generate",
            "POST /api/generate-stream",
            "POST /api/chat",
            "POST /api/save-game",
            "GET /api/my-games",
            "DELETE /api/games/{game_id}",
            "GET /health",
        ],
    }


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


async def _input_error_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(error=str(exc)).model_dump())


async def _request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    message = "Invalid request body: " + "; ".join(problems)
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


async def _model_error_handler(request: Request, exc: ModelCallFailed) -> JSONResponse:
    logger.error(f"Model call failed: {exc.message}")
    return JSONResponse(status_code=500, content=ErrorResponse(error=exc.message).model_dump())


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=exc.headers,
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    config: AppConfig | None = None,
    client: ModelClient | None = None,
) -> FastAPI:
    """Build the ASGI app. Raises StartupResourceMissing if a prompt is unreadable."""
    config = config or get_config()
    prompts = load_prompts(config)
    client = client or ModelClient(config.model, config.max_tokens)
    context = GenerationContextCache()
    store = GameStore(str(config.resolve_path(config.database_path)))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.init()
        logger.info(
            f"games.random started (origins={config.allowed_origins}, "
            f"auth={'enabled' if config.api_key else 'disabled'}, "
            f"libraries={prompts.libraries()}, model={config.model})"
        )
        yield
        logger.info("games.random shutting down")

    app = FastAPI(title="games.random", version="0.1.0", lifespan=lifespan)

    app.state.config = config
    app.state.prompts = prompts
    app.state.context = context
    app.state.store = store
    app.state.generator = GameGenerator(prompts, client, context)
    app.state.assistant = CodeAssistant(prompts, client, context)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InputValidationError, _input_error_handler)
    app.add_exception_handler(RequestValidationError, _request_error_handler)
    app.add_exception_handler(ModelCallFailed, _model_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)

    app.include_router(router)

    # Mounted last so API routes take precedence.
    if config.static_dir:
        app.mount(
            "/",
            StaticFiles(directory=config.resolve_path(config.static_dir), html=True),
            name="static",
        )

    return app
