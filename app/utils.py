"""Utility helpers for the CineMatch service."""

from __future__ import annotations

import math
import re


MISSING_SENTINEL = "N/A"
DEFAULT_RATING = 5.0

DIGIT_RUN_RE = re.compile(r"[0-9]+")
LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def is_missing(value: str | None) -> bool:
    """Return ``True`` for empty values and the provider's absence sentinel."""

    if value is None:
        return True
    stripped = value.strip()
    return not stripped or stripped == MISSING_SENTINEL


def parse_duration(text: str | None) -> int:
    """Return the minute count embedded in a runtime string like ``"142 min"``."""

    if not isinstance(text, str) or is_missing(text):
        return 0
    match = DIGIT_RUN_RE.search(text)
    if not match:
        return 0
    return int(match.group(0))


def parse_rating(text: str | None, default: float = DEFAULT_RATING) -> float:
    """Return the leading numeric rating or ``default`` when it is unusable.

    A rating of zero, a negative rating or a non-finite one is treated as
    unknown.
    """

    if not isinstance(text, str) or is_missing(text):
        return default
    match = LEADING_FLOAT_RE.match(text)
    if not match:
        return default
    try:
        value = float(match.group(0))
    except ValueError:
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return value


def format_minutes(minutes: float) -> str:
    """Return a compact human label such as ``"45 min"`` or ``"2h 30m"``."""

    total = int(minutes)
    if total < 60:
        return f"{total} min"
    hours, remainder = divmod(total, 60)
    if remainder:
        return f"{hours}h {remainder}m"
    return f"{hours}h"
