"""Coordinates watchlist edits, detail lookups and budget optimisation."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ..errors import EmptyWatchlistError, EntryNotFoundError
from ..models import OptimizationResult, WatchlistEntry
from ..optimizer import budget_from_hours, optimize
from ..utils import format_minutes
from ..watchlist import WatchlistStore
from .omdb import OMDbClient

logger = logging.getLogger(__name__)


class WatchlistManager:
    """The caller-side workflow around a :class:`WatchlistStore`."""

    def __init__(self, store: WatchlistStore, omdb: OMDbClient):
        self._store = store
        self._omdb = omdb

    @property
    def store(self) -> WatchlistStore:
        return self._store

    async def add(
        self, imdb_id: str, candidate: Mapping[str, Any] | None = None
    ) -> WatchlistEntry:
        """Add a movie, fetching full details when the runtime is unknown."""

        existing = self._store.get(imdb_id)
        if existing is not None:
            return existing

        record: Mapping[str, Any] | None = candidate
        if not record or not record.get("Runtime"):
            record = await self._omdb.fetch_details(imdb_id)
            if record is None:
                raise EntryNotFoundError(imdb_id)

        entry = WatchlistEntry.from_record({**record, "imdbID": imdb_id})
        await self._store.add(entry)
        logger.info("Added %s (%s) to the watchlist", entry.display_title(), entry.id)
        return entry

    async def remove(self, imdb_id: str) -> WatchlistEntry | None:
        entry = await self._store.remove(imdb_id)
        if entry is not None:
            logger.info("Removed %s (%s) from the watchlist", entry.display_title(), entry.id)
        return entry

    async def toggle(
        self, imdb_id: str, candidate: Mapping[str, Any] | None = None
    ) -> bool:
        """Flip membership of ``imdb_id``; return whether it is now listed."""

        if self._store.contains(imdb_id):
            await self.remove(imdb_id)
            return False
        await self.add(imdb_id, candidate)
        return True

    def snapshot(self) -> dict[str, object]:
        """Return the watchlist payload shown next to the optimiser."""

        total = self._store.total_duration_minutes()
        return {
            "count": len(self._store),
            "items": [entry.to_payload() for entry in self._store.list_entries()],
            "totalMinutes": total,
            "totalLabel": format_minutes(total),
            "persisted": self._store.last_save_ok,
        }

    def optimize(self, hours: object) -> OptimizationResult:
        """Validate the budget and evaluate the current watchlist against it."""

        budget_minutes = budget_from_hours(hours)
        if not len(self._store):
            raise EmptyWatchlistError("Your watchlist is empty!")
        return optimize(self._store.list_entries(), budget_minutes)

    async def drop(self, imdb_ids: Iterable[str], hours: object) -> OptimizationResult:
        """Remove accepted drop suggestions and evaluate the rest again."""

        budget_minutes = budget_from_hours(hours)
        for imdb_id in imdb_ids:
            await self.remove(imdb_id)
        return optimize(self._store.list_entries(), budget_minutes)
