"""Run metadata and data provenance utilities."""

from datetime import datetime
from typing import Any

from dilution_radar import SCHEMA_VERSION, VERSION


def build_meta(scanner: str, duration_ms: float | None = None) -> dict[str, Any]:
    """
    Build standard metadata block for leaderboard output.

    Args:
        scanner: Name of the scanner producing this output
        duration_ms: Run time in milliseconds (optional)

    Returns:
        Metadata dict with version info
    """
    meta: dict[str, Any] = {
        "version": VERSION,
        "schema_version": SCHEMA_VERSION,
        "scanner": scanner,
    }
    if duration_ms is not None:
        meta["duration_ms"] = round(duration_ms, 1)
    return meta


def build_provenance(
    source: str,
    as_of: datetime | str | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """
    Build data provenance block for a single data source.

    Args:
        source: Data source name (e.g., "sec_edgar", "yfinance")
        as_of: Timestamp of data freshness
        **kwargs: Additional provenance fields

    Returns:
        Provenance dict for this data source
    """
    prov: dict[str, Any] = {"source": source}

    if as_of is not None:
        if isinstance(as_of, datetime):
            prov["as_of"] = as_of.isoformat()
        else:
            prov["as_of"] = as_of

    prov.update(kwargs)

    if "warnings" not in prov:
        prov["warnings"] = []

    return prov
