"""Mood keyword extraction and search-mode dispatch."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from app.config import Settings
from app.services.gemini import GeminiClient, basic_mood_keywords
from app.services.omdb import OMDbClient
from app.services.search import SearchService


def build_settings(**overrides: Any) -> Settings:
    base = {"OMDB_API_KEY": "omdb-key", "GEMINI_API_KEY": ""}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def _gemini_reply(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.mark.parametrize(
    ("mood", "expected"),
    [
        ("I want something funny and light", "comedy"),
        ("a scary but romantic night", "horror, romance"),
        ("exciting space adventure", "action, sci-fi, adventure"),
        ("nothing specific", "popular"),
        ("", "popular"),
    ],
)
def test_basic_mood_keywords(mood: str, expected: str) -> None:
    assert basic_mood_keywords(mood) == expected


@pytest.mark.anyio
async def test_mood_keywords_uses_gemini_reply() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_gemini_reply("  feel-good comedy, road trip \n"))

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://gemini.example.com/v1beta") as http_client:
        client = GeminiClient(build_settings(GEMINI_API_KEY="g-key"), http_client)
        keywords = await client.mood_keywords("cheer me up")

    assert keywords == "feel-good comedy, road trip"
    request = requests[0]
    assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
    assert request.url.params["key"] == "g-key"
    body = json.loads(request.content)
    assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 50}
    assert "cheer me up" in body["contents"][0]["parts"][0]["text"]


@pytest.mark.anyio
async def test_mood_keywords_falls_back_without_key() -> None:
    def handler(_: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("Network access should not be triggered without a key")

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://gemini.example.com") as http_client:
        client = GeminiClient(build_settings(), http_client)
        assert await client.mood_keywords("sad movie") == "drama"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{}]}}]}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_mood_keywords_falls_back_on_bad_replies(response: httpx.Response) -> None:
    transport = httpx.MockTransport(lambda _: response)
    async with httpx.AsyncClient(transport=transport, base_url="https://gemini.example.com") as http_client:
        client = GeminiClient(build_settings(GEMINI_API_KEY="g-key"), http_client)
        assert await client.mood_keywords("scary") == "horror"


@pytest.mark.anyio
async def test_search_service_runs_one_search_per_mood_keyword() -> None:
    searched: list[str] = []

    def omdb_handler(request: httpx.Request) -> httpx.Response:
        term = request.url.params["s"]
        searched.append(term)
        return httpx.Response(
            200,
            json={"Response": "True", "Search": [{"imdbID": f"tt-{term}", "Title": term}]},
        )

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(omdb_handler), base_url="https://omdb.example.com"
    ) as omdb_http, httpx.AsyncClient(
        transport=httpx.MockTransport(lambda _: httpx.Response(200, json=_gemini_reply("heist, caper"))),
        base_url="https://gemini.example.com",
    ) as gemini_http:
        settings = build_settings(GEMINI_API_KEY="g-key")
        service = SearchService(OMDbClient(settings, omdb_http), GeminiClient(settings, gemini_http))
        results = await service.search("clever crooks", "mood")

    assert searched == ["heist", "caper"]
    assert [hit["imdbID"] for hit in results] == ["tt-heist", "tt-caper"]


@pytest.mark.anyio
async def test_search_service_rejects_blank_queries() -> None:
    async with httpx.AsyncClient(base_url="https://omdb.example.com") as http_client:
        settings = build_settings()
        service = SearchService(OMDbClient(settings, http_client), GeminiClient(settings, http_client))
        with pytest.raises(ValueError):
            await service.search("   ")


@pytest.mark.anyio
async def test_mood_search_drops_repeated_hits_and_caps_results() -> None:
    def omdb_handler(request: httpx.Request) -> httpx.Response:
        term = request.url.params["s"]
        shared = [{"imdbID": f"tt{index:02d}", "Title": f"Shared {index}"} for index in range(15)]
        own = [{"imdbID": f"tt-{term}-{index}", "Title": term} for index in range(4)]
        return httpx.Response(200, json={"Response": "True", "Search": shared + own})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(omdb_handler), base_url="https://omdb.example.com"
    ) as omdb_http, httpx.AsyncClient(
        transport=httpx.MockTransport(lambda _: httpx.Response(200, json=_gemini_reply("comedy, funny"))),
        base_url="https://gemini.example.com",
    ) as gemini_http:
        settings = build_settings(GEMINI_API_KEY="g-key")
        service = SearchService(OMDbClient(settings, omdb_http), GeminiClient(settings, gemini_http))
        results = await service.search("cheer me up", "mood")

    ids = [hit["imdbID"] for hit in results]
    assert len(ids) == len(set(ids)) == 20
    assert ids[:15] == [f"tt{index:02d}" for index in range(15)]
    assert ids[15:19] == [f"tt-comedy-{index}" for index in range(4)]
    assert ids[19] == "tt-funny-0"
