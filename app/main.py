"""Entry point for the FastAPI-powered CineMatch service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import Database
from .errors import EmptyWatchlistError, EntryNotFoundError, InvalidBudgetError, MissingApiKeyError
from .models import ApiKeysUpdate, BudgetRequest, DropRequest, SearchMode
from .repository import ApiKeyRepository, SqlWatchlistRepository
from .services.gemini import GeminiClient
from .services.omdb import OMDbClient
from .services.search import SearchService
from .services.watchlist_manager import WatchlistManager
from .watchlist import WatchlistStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    omdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.omdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    gemini_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.gemini_api_url),
            timeout=httpx.Timeout(30.0, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    api_keys = ApiKeyRepository(database.session_factory)
    omdb = OMDbClient(settings, omdb_http_client, api_keys)
    gemini = GeminiClient(settings, gemini_http_client, api_keys)
    store = WatchlistStore(
        SqlWatchlistRepository(database.session_factory, settings.watchlist_id)
    )
    await store.load()

    fastapi_app.state.database = database
    fastapi_app.state.api_keys = api_keys
    fastapi_app.state.omdb = omdb
    fastapi_app.state.search_service = SearchService(omdb, gemini)
    fastapi_app.state.watchlist_manager = WatchlistManager(store, omdb)
    logger.info("%s ready with %d watchlist entries", settings.app_name, len(store))

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Movie search and watchlist planning backed by OMDb and Gemini",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _state_service(fastapi_app: FastAPI, name: str, expected: type) -> Any:
    service = getattr(fastapi_app.state, name, None)
    if not isinstance(service, expected):
        raise RuntimeError(f"{expected.__name__} not initialised")
    return service


def get_watchlist_manager(fastapi_app: FastAPI) -> WatchlistManager:
    return _state_service(fastapi_app, "watchlist_manager", WatchlistManager)


def get_search_service(fastapi_app: FastAPI) -> SearchService:
    return _state_service(fastapi_app, "search_service", SearchService)


def get_omdb_client(fastapi_app: FastAPI) -> OMDbClient:
    return _state_service(fastapi_app, "omdb", OMDbClient)


def get_api_keys(fastapi_app: FastAPI) -> ApiKeyRepository:
    return _state_service(fastapi_app, "api_keys", ApiKeyRepository)


def _missing_key(exc: MissingApiKeyError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"error": "api_key_missing", "description": str(exc)},
    )


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/search")
    async def search_endpoint(
        q: str = Query(default=""),
        mode: SearchMode = Query(default="title", alias="type"),
    ) -> JSONResponse:
        service = get_search_service(fastapi_app)
        manager = get_watchlist_manager(fastapi_app)
        try:
            results = await service.search(q, mode)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except MissingApiKeyError as exc:
            raise _missing_key(exc) from exc
        for result in results:
            result["inWatchlist"] = manager.store.contains(str(result.get("imdbID", "")))
        return JSONResponse({"count": len(results), "results": results})

    @fastapi_app.get("/api/movies/{imdb_id}")
    async def movie_details(imdb_id: str) -> JSONResponse:
        omdb = get_omdb_client(fastapi_app)
        manager = get_watchlist_manager(fastapi_app)
        try:
            record = await omdb.fetch_details(imdb_id)
        except MissingApiKeyError as exc:
            raise _missing_key(exc) from exc
        if record is None:
            raise HTTPException(status_code=404, detail=f"Movie {imdb_id} not found")
        return JSONResponse({**record, "inWatchlist": manager.store.contains(imdb_id)})

    @fastapi_app.get("/api/movies/{imdb_id}/similar")
    async def similar_movies(imdb_id: str) -> JSONResponse:
        omdb = get_omdb_client(fastapi_app)
        try:
            record = await omdb.fetch_details(imdb_id)
            if record is None:
                raise HTTPException(status_code=404, detail=f"Movie {imdb_id} not found")
            results = await omdb.similar(record.get("Genre"), exclude_id=imdb_id)
        except MissingApiKeyError as exc:
            raise _missing_key(exc) from exc
        return JSONResponse({"count": len(results), "results": results})

    @fastapi_app.get("/api/watchlist")
    async def watchlist() -> JSONResponse:
        return JSONResponse(get_watchlist_manager(fastapi_app).snapshot())

    @fastapi_app.post("/api/watchlist/{imdb_id}")
    async def add_to_watchlist(imdb_id: str) -> JSONResponse:
        manager = get_watchlist_manager(fastapi_app)
        try:
            await manager.add(imdb_id)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except MissingApiKeyError as exc:
            raise _missing_key(exc) from exc
        return JSONResponse(manager.snapshot())

    @fastapi_app.post("/api/watchlist/{imdb_id}/toggle")
    async def toggle_watchlist(imdb_id: str) -> JSONResponse:
        manager = get_watchlist_manager(fastapi_app)
        try:
            in_list = await manager.toggle(imdb_id)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except MissingApiKeyError as exc:
            raise _missing_key(exc) from exc
        return JSONResponse({**manager.snapshot(), "inWatchlist": in_list})

    @fastapi_app.delete("/api/watchlist/{imdb_id}")
    async def remove_from_watchlist(imdb_id: str) -> JSONResponse:
        manager = get_watchlist_manager(fastapi_app)
        await manager.remove(imdb_id)
        return JSONResponse(manager.snapshot())

    @fastapi_app.post("/api/optimize")
    async def optimize_watchlist(body: BudgetRequest) -> JSONResponse:
        manager = get_watchlist_manager(fastapi_app)
        try:
            result = manager.optimize(body.hours)
        except (InvalidBudgetError, EmptyWatchlistError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(result.to_payload())

    @fastapi_app.post("/api/optimize/drop")
    async def drop_suggestions(body: DropRequest) -> JSONResponse:
        manager = get_watchlist_manager(fastapi_app)
        try:
            result = await manager.drop(body.ids, body.hours)
        except InvalidBudgetError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(
            {
                **result.to_payload(),
                "watchlist": manager.snapshot(),
            }
        )

    @fastapi_app.get("/api/keys")
    async def api_key_status() -> dict[str, bool]:
        stored = await get_api_keys(fastapi_app).all()
        return {
            "omdb": bool(stored.get("omdb") or settings.omdb_api_key),
            "gemini": bool(stored.get("gemini") or settings.gemini_api_key),
        }

    @fastapi_app.post("/api/keys")
    async def save_api_keys(body: ApiKeysUpdate) -> dict[str, bool]:
        if not body.omdb:
            raise HTTPException(status_code=400, detail="OMDB API key is required")
        api_keys = get_api_keys(fastapi_app)
        await api_keys.set("omdb", body.omdb)
        if body.gemini:
            await api_keys.set("gemini", body.gemini)
        logger.info("API keys updated")
        return await api_key_status()


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
