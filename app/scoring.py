"""Value-density scoring for watchlist entries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .utils import parse_duration, parse_rating

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .models import WatchlistEntry


def density_score(entry: "WatchlistEntry") -> float:
    """Return rating per minute of runtime; lower means less worth its length.

    Entries without a usable runtime score ``0`` and therefore sort first
    when choosing what to drop.
    """

    duration = parse_duration(entry.duration_text)
    if duration == 0:
        return 0.0
    return parse_rating(entry.rating_text) / duration
