"""Dispatches title, actor and mood searches to the upstream clients."""

from __future__ import annotations

import logging
from typing import Any

from ..models import SearchMode
from .gemini import GeminiClient
from .omdb import OMDbClient

logger = logging.getLogger(__name__)

MOOD_RESULT_LIMIT = 20


class SearchService:
    """Runs a user search in the requested mode."""

    def __init__(self, omdb: OMDbClient, gemini: GeminiClient):
        self._omdb = omdb
        self._gemini = gemini

    async def search(self, query: str, mode: SearchMode = "title") -> list[dict[str, Any]]:
        normalized = (query or "").strip()
        if not normalized:
            raise ValueError("Please enter something to search")

        if mode == "actor":
            return await self._omdb.search_by_actor(normalized)
        if mode == "mood":
            return await self._search_mood(normalized)
        return await self._omdb.search(normalized)

    async def _search_mood(self, text: str) -> list[dict[str, Any]]:
        keywords = await self._gemini.mood_keywords(text)
        terms = [part.strip() for part in keywords.split(",") if part.strip()]
        logger.info("Mood %r mapped to search terms %s", text, terms)

        results: list[dict[str, Any]] = []
        seen: set[str] = set()
        for term in terms:
            for hit in await self._omdb.search(term):
                imdb_id = hit.get("imdbID")
                if imdb_id in seen:
                    continue
                if imdb_id:
                    seen.add(imdb_id)
                results.append(hit)
        return results[:MOOD_RESULT_LIMIT]
