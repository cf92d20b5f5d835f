"""FastAPI application exposing the game catalog and hybrid search."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger

from game_search.config import GameSearchConfig
from game_search.embedding import EmbeddingClient, create_embedding_client
from game_search.index import QdrantIndex, VectorIndex
from game_search.models import GameUpsert
from game_search.search import SearchOrchestrator

from . import __version__
from .db import GameStore
from .schemas import PayloadError, parse_game_upsert
from .seed import SAMPLE_GAMES, sample_id


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    config: GameSearchConfig | None = None,
    *,
    store: GameStore | None = None,
    embedder: EmbeddingClient | None = None,
    index: VectorIndex | None = None,
) -> FastAPI:
    """Build the application.

    Components not passed in are built from `config`. The embedding client
    and the vector index are closed when the application shuts down. Store
    calls never run on the event loop: plain routes are served from the
    threadpool and async routes hand store calls to it.

    Args:
        config: Validated configuration (defaults if None)
        store: Record store override
        embedder: Embedding client override
        index: Vector index override

    Returns:
        Configured FastAPI application
    """
    config = config or GameSearchConfig()
    store = store or GameStore(config.store.sqlite_path)
    embedder = embedder or create_embedding_client(config.embedding)
    index = index or QdrantIndex(config.index)
    orchestrator = SearchOrchestrator(store, embedder, index, config.search)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"wanna2play {__version__} starting (sqlite={store.path}, "
            f"qdrant={index.url}/{index.collection or '-'}, "
            f"embeddings={'on' if embedder.enabled else 'off'})"
        )
        yield
        await embedder.aclose()
        await index.aclose()

    app = FastAPI(title="wanna2play", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.get("/api/search")
    async def search(q: str = "", limit: int = config.search.default_limit) -> dict[str, Any]:
        response = await orchestrator.search(q, limit)
        return response.to_payload()

    @app.get("/api/games")
    def list_games(limit: int = config.search.default_limit) -> dict[str, Any]:
        return {"results": [game.model_dump(by_alias=True) for game in store.list_recent(limit)]}

    @app.post("/api/games")
    async def upsert_game(request: Request, background_tasks: BackgroundTasks) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return _error("Invalid JSON body.", 400)

        try:
            upsert = parse_game_upsert(body)
        except PayloadError as e:
            return _error(str(e), 400)

        game = await run_in_threadpool(store.upsert, upsert)
        # Indexing runs after the response is sent and never affects it.
        background_tasks.add_task(orchestrator.index_record, game)
        return JSONResponse(game.model_dump(by_alias=True), status_code=201)

    @app.get("/api/games/{game_id}")
    def get_game(game_id: str) -> JSONResponse:
        game = store.get_by_id(game_id)
        if game is None:
            return _error("Not found.", 404)
        return JSONResponse(game.model_dump(by_alias=True))

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "ok": True,
            "sqlite": {"path": str(store.path)},
            "qdrant": {
                "url": index.url,
                "collection": index.collection,
                "ready": await index.health_check(),
                "configError": index.config_error,
            },
            "embedding": {
                "provider": config.embedding.provider,
                "baseUrl": config.embedding.base_url,
                "model": config.embedding.model,
            },
        }

    @app.post("/api/seed")
    async def seed() -> JSONResponse:
        if await run_in_threadpool(store.count) > 0:
            return _error("Seed refused because the library is not empty.", 409)

        embedded = 0
        for title, stores in SAMPLE_GAMES:
            upsert = GameUpsert(id=sample_id(title), title=title, stores=stores)
            game = await run_in_threadpool(store.upsert, upsert)
            if await orchestrator.index_record(game):
                embedded += 1

        logger.info(f"Seeded {len(SAMPLE_GAMES)} sample games ({embedded} embedded)")
        return JSONResponse({"ok": True, "inserted": len(SAMPLE_GAMES), "embedded": embedded})

    return app
