from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.errors import MissingApiKeyError
from app.main import register_routes
from app.repository import ApiKeyRepository
from app.services.omdb import OMDbClient
from app.services.search import SearchService
from app.services.watchlist_manager import WatchlistManager
from app.watchlist import WatchlistStore


RECORDS: dict[str, dict[str, Any]] = {
    "ttA": {"imdbID": "ttA", "Title": "A", "Runtime": "120 min", "imdbRating": "8.5", "Genre": "Drama"},
    "ttB": {"imdbID": "ttB", "Title": "B", "Runtime": "180 min", "imdbRating": "7.0", "Genre": "Drama"},
    "ttC": {"imdbID": "ttC", "Title": "C", "Runtime": "90 min", "imdbRating": "9.0", "Genre": "Drama"},
    "ttD": {"imdbID": "ttD", "Title": "D", "Runtime": "N/A", "imdbRating": "6.0", "Genre": "Drama"},
}


class DummyOMDbClient(OMDbClient):
    """Minimal OMDbClient stub serving canned records."""

    def __init__(self, *, configured: bool = True) -> None:
        # Deliberately skip super().__init__ to avoid touching external systems.
        self.configured = configured

    def _check_key(self) -> None:
        if not self.configured:
            raise MissingApiKeyError("OMDb")

    async def search(self, query: str, *, api_key: str | None = None):  # type: ignore[override]
        self._check_key()
        return [
            {"imdbID": record["imdbID"], "Title": record["Title"]}
            for record in RECORDS.values()
            if query.lower() in record["Title"].lower()
        ]

    async def search_by_actor(self, name: str, *, api_key: str | None = None):  # type: ignore[override]
        return await self.search(name)

    async def fetch_details(self, imdb_id: str, *, api_key: str | None = None):  # type: ignore[override]
        self._check_key()
        record = RECORDS.get(imdb_id)
        return dict(record) if record else None

    async def similar(self, genre, *, exclude_id=None, api_key=None):  # type: ignore[override]
        return [
            {"imdbID": key, "Title": record["Title"]}
            for key, record in RECORDS.items()
            if key != exclude_id and record["Genre"] == genre
        ]


class DummyApiKeyRepository(ApiKeyRepository):
    def __init__(self) -> None:
        self.keys: dict[str, str] = {}

    async def get(self, name: str) -> str | None:  # type: ignore[override]
        return self.keys.get(name)

    async def set(self, name: str, value: str) -> None:  # type: ignore[override]
        self.keys[name] = value

    async def all(self) -> dict[str, str]:  # type: ignore[override]
        return dict(self.keys)


class DummySearchService(SearchService):
    def __init__(self, omdb: OMDbClient) -> None:
        self._omdb = omdb

    async def _search_mood(self, text: str):  # type: ignore[override]
        return await self._omdb.search("a")


def build_app(*, configured: bool = True) -> tuple[FastAPI, WatchlistManager]:
    app = FastAPI()
    register_routes(app)
    omdb = DummyOMDbClient(configured=configured)
    manager = WatchlistManager(WatchlistStore(), omdb)
    app.state.omdb = omdb
    app.state.watchlist_manager = manager
    app.state.search_service = DummySearchService(omdb)
    app.state.api_keys = DummyApiKeyRepository()
    return app, manager


def test_healthcheck() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_search_marks_watchlist_membership() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        client.post("/api/watchlist/ttA")
        response = client.get("/api/search", params={"q": "a", "type": "title"})

    assert response.status_code == 200
    payload = response.json()
    flags = {hit["imdbID"]: hit["inWatchlist"] for hit in payload["results"]}
    assert flags["ttA"] is True


@pytest.mark.parametrize(
    ("params", "status"),
    [({"q": ""}, 400), ({"q": "a", "type": "genre"}, 422)],
)
def test_search_rejects_bad_requests(params: dict[str, str], status: int) -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        response = client.get("/api/search", params=params)

    assert response.status_code == status


def test_missing_omdb_key_is_reported() -> None:
    app, _ = build_app(configured=False)

    with TestClient(app) as client:
        response = client.get("/api/search", params={"q": "a"})

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "api_key_missing"


def test_movie_details_and_similar() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        details = client.get("/api/movies/ttA")
        similar = client.get("/api/movies/ttA/similar")
        missing = client.get("/api/movies/tt404")

    assert details.json()["inWatchlist"] is False
    assert [hit["imdbID"] for hit in similar.json()["results"]] == ["ttB", "ttC", "ttD"]
    assert missing.status_code == 404


def test_watchlist_add_toggle_remove() -> None:
    app, manager = build_app()

    with TestClient(app) as client:
        added = client.post("/api/watchlist/ttA").json()
        again = client.post("/api/watchlist/ttA").json()
        toggled = client.post("/api/watchlist/ttC/toggle").json()
        removed = client.delete("/api/watchlist/ttA").json()
        unknown = client.post("/api/watchlist/tt404")

    assert added["count"] == 1
    assert again["count"] == 1
    assert toggled["inWatchlist"] is True
    assert toggled["totalMinutes"] == 210
    assert [item["imdbID"] for item in removed["items"]] == ["ttC"]
    assert unknown.status_code == 404
    assert len(manager.store) == 1


def test_optimize_flow() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        empty = client.post("/api/optimize", json={"hours": 5})
        for imdb_id in ["ttA", "ttB", "ttC"]:
            client.post(f"/api/watchlist/{imdb_id}")
        invalid = client.post("/api/optimize", json={"hours": "later"})
        negative = client.post("/api/optimize", json={"hours": -2})
        exceeds = client.post("/api/optimize", json={"hours": 5}).json()
        dropped = client.post(
            "/api/optimize/drop", json={"ids": ["ttB"], "hours": 5}
        ).json()

    assert empty.status_code == 400
    assert invalid.status_code == 400
    assert negative.status_code == 400
    assert exceeds["status"] == "exceeds"
    assert [item["imdbID"] for item in exceeds["dropList"]] == ["ttB"]
    assert exceeds["remainingMinutes"] == 210
    assert exceeds["dropList"][0]["efficiency"] == pytest.approx(0.0389, abs=1e-4)
    assert dropped["status"] == "fits"
    assert dropped["dropList"] == []
    assert dropped["watchlist"]["count"] == 2


def test_optimize_suggests_unknown_runtimes_first() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        client.post("/api/watchlist/ttD")
        client.post("/api/watchlist/ttA")
        payload = client.post("/api/optimize", json={"hours": 50 / 60}).json()

    assert [item["imdbID"] for item in payload["dropList"]] == ["ttD", "ttA"]
    assert payload["remainingMinutes"] == 0


def test_api_keys_round_trip() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        rejected = client.post("/api/keys", json={"gemini": "g"})
        saved = client.post("/api/keys", json={"omdb": " o-key ", "gemini": ""})

    assert rejected.status_code == 400
    assert saved.status_code == 200
    assert saved.json()["omdb"] is True
    assert app.state.api_keys.keys == {"omdb": "o-key"}
