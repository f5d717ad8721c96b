"""Greedy watchlist budget optimiser."""

from __future__ import annotations

import math
from typing import Sequence

from .errors import InvalidBudgetError
from .models import DropSuggestion, OptimizationResult, WatchlistEntry
from .scoring import density_score
from .utils import LEADING_FLOAT_RE, parse_duration


def budget_from_hours(value: object) -> float:
    """Validate a viewing budget expressed in hours and return it in minutes.

    Strings are read up to their leading number, so ``"2h"`` and
    ``"1.5 hours"`` are accepted.
    """

    if isinstance(value, bool) or value is None:
        raise InvalidBudgetError("Enter a valid time in hours")
    if isinstance(value, str):
        match = LEADING_FLOAT_RE.match(value)
        if not match:
            raise InvalidBudgetError("Enter a valid time in hours")
        value = match.group(0)
    try:
        hours = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise InvalidBudgetError("Enter a valid time in hours") from exc
    if not math.isfinite(hours) or hours <= 0:
        raise InvalidBudgetError("Enter a valid time in hours")
    return hours * 60


def optimize(
    entries: Sequence[WatchlistEntry], budget_minutes: float
) -> OptimizationResult:
    """Suggest the lowest-density entries to drop until the rest fits the budget.

    The walk is a single pass over a stably sorted copy of ``entries``, so it
    stops after at most ``len(entries)`` steps even when the budget can never
    be met. ``entries`` is never modified.
    """

    total_minutes = sum(parse_duration(entry.duration_text) for entry in entries)
    if total_minutes <= budget_minutes:
        return OptimizationResult(
            remaining_minutes=total_minutes,
            total_minutes=total_minutes,
            budget_minutes=budget_minutes,
        )

    # sorted() is stable, so equal scores keep their insertion order.
    ranked = sorted(entries, key=density_score)

    drop_list: list[DropSuggestion] = []
    remaining = total_minutes
    for entry in ranked:
        if remaining <= budget_minutes:
            break
        drop_list.append(DropSuggestion.for_entry(entry))
        remaining -= parse_duration(entry.duration_text)

    return OptimizationResult(
        drop_list=drop_list,
        remaining_minutes=remaining,
        total_minutes=total_minutes,
        budget_minutes=budget_minutes,
    )
