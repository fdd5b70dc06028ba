"""Validation utilities and parameter classes."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

# Lookback windows accepted by the scanners (days)
MIN_LOOKBACK_DAYS = 1
MAX_LOOKBACK_DAYS = 365
# Hits collected per search pass; EDGAR full-text search pages 100 at a time
MAX_SEARCH_SIZE = 200
SEARCH_PAGE_SIZE = 100


@dataclass(frozen=True)
class SearchParams:
    """Immutable EDGAR full-text search parameters."""

    query: str
    forms: str
    start_date: str
    end_date: str
    size: int = MAX_SEARCH_SIZE

    def __post_init__(self) -> None:
        # Normalize forms: uppercase, no spaces, stable order
        forms = ",".join(sorted(f.strip().upper() for f in self.forms.split(",") if f.strip()))
        if not forms:
            raise ValueError("At least one form type is required")
        object.__setattr__(self, "forms", forms)

        for label, value in (("start_date", self.start_date), ("end_date", self.end_date)):
            try:
                date.fromisoformat(value)
            except ValueError as e:
                raise ValueError(f"Invalid {label} '{value}'. Expected YYYY-MM-DD") from e
        if self.start_date > self.end_date:
            raise ValueError(f"start_date {self.start_date} is after end_date {self.end_date}")

        size = max(1, min(int(self.size), MAX_SEARCH_SIZE))
        object.__setattr__(self, "size", size)

    @classmethod
    def lookback(cls, query: str, forms: str, days: int, as_of: date, size: int = MAX_SEARCH_SIZE) -> "SearchParams":
        """Search window ending on as_of and starting `days` earlier."""
        days = validate_lookback_days(days)
        return cls(
            query=query,
            forms=forms,
            start_date=(as_of - timedelta(days=days)).isoformat(),
            end_date=as_of.isoformat(),
            size=size,
        )

    def to_query_params(self, offset: int = 0) -> dict[str, Any]:
        """Query string for the full-text search endpoint."""
        params: dict[str, Any] = {
            "q": self.query,
            "dateRange": "custom",
            "startdt": self.start_date,
            "enddt": self.end_date,
            "forms": self.forms,
        }
        if offset:
            params["from"] = offset
        return params


def validate_lookback_days(days: int) -> int:
    """Return days if it is a sane lookback window, else raise ValueError."""
    if not MIN_LOOKBACK_DAYS <= int(days) <= MAX_LOOKBACK_DAYS:
        raise ValueError(
            f"Invalid lookback '{days}'. Must be between {MIN_LOOKBACK_DAYS} and {MAX_LOOKBACK_DAYS} days"
        )
    return int(days)
