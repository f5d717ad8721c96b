"""Pydantic models describing watchlist entries and optimiser results."""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .scoring import density_score
from .utils import format_minutes, is_missing, parse_duration, parse_rating

SearchMode = Literal["title", "actor", "mood"]


class WatchlistEntry(BaseModel):
    """A single movie the user has chosen to watch.

    Field names follow Python conventions while validation also accepts the
    OMDb record keys (``imdbID``, ``Title``, ``Runtime`` ...), so provider
    payloads can be passed straight through ``from_record``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "imdbID", "imdb_id"))
    title: str | None = Field(
        default=None, validation_alias=AliasChoices("title", "Title")
    )
    year: str | None = Field(
        default=None, validation_alias=AliasChoices("year", "Year")
    )
    poster: str | None = Field(
        default=None, validation_alias=AliasChoices("poster", "Poster")
    )
    duration_text: str | None = Field(
        default=None, validation_alias=AliasChoices("duration_text", "Runtime", "runtime")
    )
    rating_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("rating_text", "imdbRating", "imdb_rating"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _require_identifier(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("Watchlist entries require a non-empty id")
        return value

    @field_validator("title", "year", "poster", "duration_text", "rating_text", mode="before")
    @classmethod
    def _normalise_optional_text(cls, value: object) -> object:
        """Collapse blank strings and the ``N/A`` sentinel to ``None``."""

        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return None if is_missing(value) else value.strip()
        return value

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "WatchlistEntry":
        """Build an entry from a provider record, ignoring unrelated keys."""

        return cls.model_validate(dict(record))

    @property
    def duration_minutes(self) -> int:
        return parse_duration(self.duration_text)

    @property
    def rating(self) -> float:
        return parse_rating(self.rating_text)

    @property
    def density_score(self) -> float:
        return density_score(self)

    def display_title(self) -> str:
        """Return a human-friendly title, falling back to the identifier."""

        title = (self.title or "").strip()
        return title or self.id

    def to_payload(self) -> dict[str, object]:
        """Return the OMDb-shaped JSON payload served to the front-end."""

        return {
            "imdbID": self.id,
            "Title": self.display_title(),
            "Year": self.year,
            "Poster": self.poster,
            "Runtime": self.duration_text or "N/A",
            "imdbRating": self.rating_text or "N/A",
            "runtimeMinutes": self.duration_minutes,
        }


class DropSuggestion(BaseModel):
    """An entry the optimiser recommends removing."""

    entry: WatchlistEntry
    duration_minutes: int
    density_score: float

    @classmethod
    def for_entry(cls, entry: WatchlistEntry) -> "DropSuggestion":
        return cls(
            entry=entry,
            duration_minutes=entry.duration_minutes,
            density_score=entry.density_score,
        )

    def to_payload(self) -> dict[str, object]:
        payload = self.entry.to_payload()
        payload["efficiency"] = round(self.density_score, 4)
        return payload


class OptimizationResult(BaseModel):
    """Outcome of fitting a watchlist into a viewing budget."""

    drop_list: list[DropSuggestion] = Field(default_factory=list)
    remaining_minutes: int
    total_minutes: int
    budget_minutes: float

    @property
    def fits(self) -> bool:
        """Whether the entries left after dropping fit the budget."""

        return self.remaining_minutes <= self.budget_minutes

    @property
    def excess_minutes(self) -> float:
        return max(0.0, self.total_minutes - self.budget_minutes)

    @property
    def spare_minutes(self) -> float:
        return max(0.0, self.budget_minutes - self.remaining_minutes)

    @property
    def dropped_entries(self) -> list[WatchlistEntry]:
        return [suggestion.entry for suggestion in self.drop_list]

    def to_payload(self) -> dict[str, object]:
        """Return the JSON payload describing the evaluation."""

        return {
            "status": "fits" if self.total_minutes <= self.budget_minutes else "exceeds",
            "fits": self.fits,
            "totalMinutes": self.total_minutes,
            "totalLabel": format_minutes(self.total_minutes),
            "budgetMinutes": self.budget_minutes,
            "budgetLabel": format_minutes(self.budget_minutes),
            "excessMinutes": self.excess_minutes,
            "spareMinutes": self.spare_minutes,
            "remainingMinutes": self.remaining_minutes,
            "remainingLabel": format_minutes(self.remaining_minutes),
            "dropList": [suggestion.to_payload() for suggestion in self.drop_list],
        }


class BudgetRequest(BaseModel):
    """Request body for optimisation endpoints."""

    hours: Any = None


class DropRequest(BudgetRequest):
    """Request body used when the user accepts drop suggestions."""

    ids: list[str] = Field(default_factory=list)


class ApiKeysUpdate(BaseModel):
    """API keys submitted from the settings dialog."""

    omdb: str | None = None
    gemini: str | None = None

    @field_validator("omdb", "gemini", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value
