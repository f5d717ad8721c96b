"""Mood-to-keyword extraction through the Gemini generateContent API."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings
from .omdb import KeySource

logger = logging.getLogger(__name__)

MOOD_PROMPT = (
    "You are a movie recommendation assistant. Based on the following mood "
    "description, suggest 2-3 specific movie search terms that would help find "
    "relevant movies. Return ONLY the search terms separated by commas, nothing "
    "else.\n\nMood: \"{mood}\"\n\nYour response:"
)

# Cue words are matched as substrings of each word of the mood text.
MOOD_GENRES: dict[str, str] = {
    "funny": "comedy",
    "laugh": "comedy",
    "humor": "comedy",
    "light": "comedy",
    "happy": "comedy",
    "scary": "horror",
    "horror": "horror",
    "frightening": "horror",
    "thriller": "thriller",
    "suspense": "thriller",
    "exciting": "action",
    "action": "action",
    "adventure": "adventure",
    "thrilling": "action",
    "romantic": "romance",
    "love": "romance",
    "romance": "romance",
    "emotional": "drama",
    "drama": "drama",
    "sad": "drama",
    "cry": "drama",
    "sci-fi": "sci-fi",
    "space": "sci-fi",
    "future": "sci-fi",
    "animated": "animation",
    "cartoon": "animation",
    "family": "family",
    "kids": "family",
    "documentary": "documentary",
    "mystery": "mystery",
    "crime": "crime",
    "war": "war",
    "historical": "history",
    "fantasy": "fantasy",
    "magic": "fantasy",
}


def basic_mood_keywords(text: str) -> str:
    """Map mood words to genres without calling the model."""

    genres: list[str] = []
    for word in text.lower().split():
        for cue, genre in MOOD_GENRES.items():
            if cue in word and genre not in genres:
                genres.append(genre)
    return ", ".join(genres) if genres else "popular"


class GeminiClient:
    """Client responsible for talking to Gemini's generateContent endpoint."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        key_source: KeySource | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._key_source = key_source

    async def _resolve_api_key(self, api_key: str | None) -> str | None:
        if api_key:
            return api_key
        if self._key_source is not None:
            stored = await self._key_source.get("gemini")
            if stored:
                return stored
        return self._settings.gemini_api_key

    async def mood_keywords(self, text: str, *, api_key: str | None = None) -> str:
        """Return comma-separated search terms describing ``text``."""

        key = await self._resolve_api_key(api_key)
        if not key:
            logger.info("Gemini API key not configured; using basic mood keywords")
            return basic_mood_keywords(text)

        payload = {
            "contents": [{"parts": [{"text": MOOD_PROMPT.format(mood=text)}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 50},
        }
        endpoint = f"/models/{self._settings.gemini_model}:generateContent"
        try:
            response = await self._client.post(
                endpoint,
                params={"key": key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Gemini request failed: %s", exc)
            return basic_mood_keywords(text)
        if response.status_code >= 400:
            logger.warning(
                "Gemini request failed with %s: %s", response.status_code, response.text
            )
            return basic_mood_keywords(text)

        keywords = self._extract_text(response)
        if not keywords:
            return basic_mood_keywords(text)
        return keywords

    @staticmethod
    def _extract_text(response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        content = candidates[0].get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not parts or not isinstance(parts[0], dict):
            return None
        value = parts[0].get("text")
        if not isinstance(value, str):
            return None
        return value.strip() or None
