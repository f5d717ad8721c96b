"""Client for the Open Movie Database (OMDb) API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from ..config import Settings
from ..errors import MissingApiKeyError

logger = logging.getLogger(__name__)

GENRE_SEARCH_TERMS: dict[str, tuple[str, ...]] = {
    "Action": ("action", "adventure", "thriller"),
    "Comedy": ("comedy", "funny", "humor"),
    "Drama": ("drama", "emotional", "story"),
    "Horror": ("horror", "scary", "thriller"),
    "Sci-Fi": ("space", "future", "robot"),
    "Romance": ("love", "romance", "romantic"),
    "Thriller": ("thriller", "suspense", "mystery"),
    "Animation": ("animation", "animated", "cartoon"),
}


class KeySource(Protocol):
    async def get(self, name: str) -> str | None:
        ...


class OMDbClient:
    """Searches OMDb and resolves full movie records by IMDb id."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        key_source: KeySource | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._key_source = key_source

    async def resolve_api_key(self, api_key: str | None = None) -> str:
        """Return the explicit, saved or configured key, in that order."""

        if api_key:
            return api_key
        if self._key_source is not None:
            stored = await self._key_source.get("omdb")
            if stored:
                return stored
        if self._settings.omdb_api_key:
            return self._settings.omdb_api_key
        raise MissingApiKeyError("OMDb")

    async def search(self, query: str, *, api_key: str | None = None) -> list[dict[str, Any]]:
        """Return the raw OMDb search hits for a movie title query."""

        key = await self.resolve_api_key(api_key)
        payload = await self._get(
            {"apikey": key, "s": query, "type": "movie"}, context=f"search {query!r}"
        )
        if payload is None:
            return []
        if payload.get("Response") != "True":
            logger.info("OMDb search for %r returned no results: %s", query, payload.get("Error"))
            return []
        results = payload.get("Search") or []
        return [entry for entry in results if isinstance(entry, dict)]

    async def fetch_details(
        self, imdb_id: str, *, api_key: str | None = None
    ) -> dict[str, Any] | None:
        """Return the full OMDb record for ``imdb_id`` or ``None``."""

        key = await self.resolve_api_key(api_key)
        payload = await self._get(
            {"apikey": key, "i": imdb_id, "plot": "full"}, context=f"details {imdb_id}"
        )
        if payload is None or payload.get("Response") != "True":
            return None
        return payload

    async def search_by_actor(
        self, name: str, *, api_key: str | None = None
    ) -> list[dict[str, Any]]:
        """Search by name and keep the hits whose cast lists that actor.

        OMDb has no cast search, so the top hits are expanded to full records
        and filtered on ``Actors``. When nothing matches, the plain search
        results are returned instead.
        """

        key = await self.resolve_api_key(api_key)
        hits = await self.search(name, api_key=key)
        if not hits:
            return []

        candidates = hits[: self._settings.actor_detail_limit]
        details = await asyncio.gather(
            *(
                self.fetch_details(str(hit.get("imdbID", "")), api_key=key)
                for hit in candidates
            )
        )
        needle = name.casefold()
        matches = [
            record
            for record in details
            if record and needle in str(record.get("Actors") or "").casefold()
        ]
        return matches or hits

    async def similar(
        self,
        genre: str | None,
        *,
        exclude_id: str | None = None,
        api_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return movies related to the first listed genre of a title."""

        if not genre:
            return []
        main_genre = genre.split(",")[0].strip()
        if not main_genre:
            return []
        terms = GENRE_SEARCH_TERMS.get(main_genre, (main_genre.lower(),))

        key = await self.resolve_api_key(api_key)
        batches = await asyncio.gather(*(self.search(term, api_key=key) for term in terms))

        seen: set[str] = set()
        if exclude_id:
            seen.add(exclude_id)
        merged: list[dict[str, Any]] = []
        for batch in batches:
            for entry in batch:
                imdb_id = entry.get("imdbID")
                if not imdb_id or imdb_id in seen:
                    continue
                seen.add(imdb_id)
                merged.append(entry)
        return merged[: self._settings.similar_result_limit]

    async def _get(self, params: dict[str, Any], *, context: str) -> dict[str, Any] | None:
        try:
            response = await self._client.get("/", params=params)
        except httpx.HTTPError as exc:
            logger.warning("OMDb %s failed: %s", context, exc)
            return None
        if response.status_code >= 400:
            logger.warning(
                "OMDb %s failed with %s: %s", context, response.status_code, response.text
            )
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("OMDb %s returned invalid JSON", context)
            return None
        if not isinstance(payload, dict):
            return None
        return payload
