"""SQL-backed persistence for watchlists and saved API keys."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import ApiKeyRecord, WatchlistEntryRecord
from .models import WatchlistEntry

logger = logging.getLogger(__name__)

API_KEY_NAMES: tuple[str, ...] = ("omdb", "gemini")


class SqlWatchlistRepository:
    """Persistence provider storing one watchlist's entries in order."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        watchlist_id: str = "default",
    ):
        self._session_factory = session_factory
        self._watchlist_id = watchlist_id

    @property
    def watchlist_id(self) -> str:
        return self._watchlist_id

    async def load_all(self) -> list[WatchlistEntry]:
        """Return the stored entries ordered by their saved position."""

        async with self._session_factory() as session:
            stmt = (
                select(WatchlistEntryRecord)
                .where(WatchlistEntryRecord.watchlist_id == self._watchlist_id)
                .order_by(WatchlistEntryRecord.position, WatchlistEntryRecord.id)
            )
            result = await session.execute(stmt)
            records = result.scalars().all()

        entries: list[WatchlistEntry] = []
        for record in records:
            try:
                entries.append(self._record_to_entry(record))
            except ValidationError:
                logger.warning("Ignoring unreadable watchlist row %s", record.id)
        return entries

    async def save_all(self, entries: Sequence[WatchlistEntry]) -> bool:
        """Replace the stored watchlist with ``entries`` in one transaction."""

        now = datetime.utcnow()
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(WatchlistEntryRecord).where(
                        WatchlistEntryRecord.watchlist_id == self._watchlist_id
                    )
                )
                for position, entry in enumerate(entries):
                    session.add(
                        WatchlistEntryRecord(
                            watchlist_id=self._watchlist_id,
                            imdb_id=entry.id,
                            position=position,
                            title=entry.title,
                            year=entry.year,
                            poster=entry.poster,
                            runtime=entry.duration_text,
                            imdb_rating=entry.rating_text,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to persist watchlist %s", self._watchlist_id)
            return False
        return True

    @staticmethod
    def _record_to_entry(record: WatchlistEntryRecord) -> WatchlistEntry:
        return WatchlistEntry(
            id=record.imdb_id,
            title=record.title,
            year=record.year,
            poster=record.poster,
            duration_text=record.runtime,
            rating_text=record.imdb_rating,
        )


class ApiKeyRepository:
    """Stores the user's upstream API keys between sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, name: str) -> str | None:
        async with self._session_factory() as session:
            record = await session.get(ApiKeyRecord, name)
            if record is None:
                return None
            return record.value or None

    async def set(self, name: str, value: str) -> None:
        """Create or replace the stored key called ``name``."""

        if name not in API_KEY_NAMES:
            raise ValueError(f"Unknown API key name: {name}")
        now = datetime.utcnow()
        async with self._session_factory() as session:
            record = await session.get(ApiKeyRecord, name)
            if record is None:
                session.add(
                    ApiKeyRecord(name=name, value=value, created_at=now, updated_at=now)
                )
            else:
                record.value = value
                record.updated_at = now
            await session.commit()

    async def all(self) -> dict[str, str]:
        async with self._session_factory() as session:
            result = await session.execute(select(ApiKeyRecord))
            return {
                record.name: record.value
                for record in result.scalars().all()
                if record.value
            }
