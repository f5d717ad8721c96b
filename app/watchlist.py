"""In-memory watchlist store backed by a persistence provider."""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, Sequence

from .models import WatchlistEntry
from .utils import parse_duration

logger = logging.getLogger(__name__)


class WatchlistPersistence(Protocol):
    """Storage collaborator used to rehydrate and flush a watchlist."""

    async def load_all(self) -> list[WatchlistEntry]:
        ...

    async def save_all(self, entries: Sequence[WatchlistEntry]) -> bool:
        ...


class WatchlistStore:
    """Ordered, de-duplicated collection of the user's selected movies.

    The in-memory list is authoritative for the session. Every mutation is
    flushed to the persistence provider; a failed flush is logged and reported
    through ``last_save_ok`` but never rolls back the change.
    """

    def __init__(self, persistence: WatchlistPersistence | None = None):
        self._persistence = persistence
        self._entries: list[WatchlistEntry] = []
        self._index: dict[str, WatchlistEntry] = {}
        self.last_save_ok = True

    async def load(self) -> None:
        """Replace the in-memory entries with the persisted watchlist."""

        self._entries = []
        self._index = {}
        if self._persistence is None:
            return
        try:
            stored = await self._persistence.load_all()
        except Exception:
            logger.exception("Failed to load persisted watchlist; starting empty")
            return

        for entry in stored:
            if entry.id in self._index:
                logger.warning("Skipping duplicate persisted watchlist entry %s", entry.id)
                continue
            self._entries.append(entry)
            self._index[entry.id] = entry
        logger.info("Loaded %d watchlist entries", len(self._entries))

    async def add(self, entry: WatchlistEntry) -> bool:
        """Append ``entry`` unless its id is already present."""

        if entry.id in self._index:
            return False
        self._entries.append(entry)
        self._index[entry.id] = entry
        await self._flush()
        return True

    async def remove(self, entry_id: str) -> WatchlistEntry | None:
        """Remove and return the entry with ``entry_id`` when present."""

        entry = self._index.pop(entry_id, None)
        if entry is None:
            return None
        self._entries = [item for item in self._entries if item.id != entry_id]
        await self._flush()
        return entry

    def contains(self, entry_id: str) -> bool:
        return entry_id in self._index

    def get(self, entry_id: str) -> WatchlistEntry | None:
        return self._index.get(entry_id)

    def list_entries(self) -> list[WatchlistEntry]:
        """Return a copy of the entries in insertion order."""

        return list(self._entries)

    def total_duration_minutes(self) -> int:
        return sum(parse_duration(entry.duration_text) for entry in self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._index

    def __iter__(self) -> Iterator[WatchlistEntry]:
        return iter(self.list_entries())

    def __len__(self) -> int:
        return len(self._entries)

    async def _flush(self) -> None:
        if self._persistence is None:
            self.last_save_ok = True
            return
        try:
            saved = await self._persistence.save_all(self.list_entries())
        except Exception:
            logger.exception("Persisting the watchlist raised unexpectedly")
            saved = False
        if not saved:
            logger.warning(
                "Watchlist changes were not persisted; keeping %d entries in memory",
                len(self._entries),
            )
        self.last_save_ok = bool(saved)
