"""Filing search hit deduplication: one surviving filing per ticker."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from dilution_radar.models import Filing
from dilution_radar.utils.sanitize import sanitize_text

logger = logging.getLogger(__name__)

# "Company Name  (TICK, TICK2)  (CIK 0001234567)"
_TICKER_RE = re.compile(r"\(([A-Z]{1,5})(?=[,)])")


def extract_ticker(display_name: str | None) -> str | None:
    """
    Return the first parenthesized 1-5 uppercase letter ticker, or None.

    The group must be followed by "," or ")", so "(CIK 0001234567)" is not
    a ticker.
    """
    if not display_name:
        return None
    match = _TICKER_RE.search(display_name)
    return match.group(1) if match else None


def company_name_from_display(display_name: str | None, fallback: str) -> str:
    """Company name is everything before the first double-space parenthesis."""
    if not display_name:
        return fallback
    name = display_name.split("  (")[0]
    return sanitize_text(name, max_length=120) or fallback


def days_between(file_date: str, as_of: date) -> int:
    """Whole days from an ISO filing date to as_of, never negative."""
    try:
        filed = date.fromisoformat(file_date[:10])
    except ValueError:
        return 0
    return max((as_of - filed).days, 0)


def filing_from_hit(hit: Mapping[str, Any], as_of: date, default_form: str = "") -> Filing | None:
    """
    Build a Filing from one search hit.

    Accepts either the raw Elasticsearch hit ({"_source": {...}}) or the
    source dict itself. Returns None when no ticker can be extracted.
    """
    source = hit.get("_source", hit)
    names = source.get("display_names") or []
    display_name = names[0] if names else None
    ticker = extract_ticker(display_name)
    file_date = source.get("file_date")
    if not ticker or not file_date:
        return None

    ciks = source.get("ciks") or []
    return Filing(
        ticker=ticker,
        company_name=company_name_from_display(display_name, ticker),
        file_date=str(file_date),
        form_type=source.get("form") or default_form,
        days_since_filing=days_between(str(file_date), as_of),
        cik=ciks[0] if ciks else None,
        accession=source.get("adsh"),
    )


def merge_filing(tickers: dict[str, Filing], filing: Filing, only_if_absent: bool = False) -> None:
    """
    Merge one filing into the ticker map in place.

    Date rule: the greatest file_date string wins and equal dates keep the
    later arrival. With only_if_absent the filing is inserted only for a
    ticker that has no entry yet.
    """
    existing = tickers.get(filing.ticker)
    if existing is None:
        tickers[filing.ticker] = filing
        return
    if only_if_absent:
        return
    if filing.file_date >= existing.file_date:
        tickers[filing.ticker] = filing


def dedupe_hits(
    hits: Iterable[Mapping[str, Any]],
    as_of: date,
    default_form: str = "",
) -> dict[str, Filing]:
    """Keep the most recent filing per ticker. Hits without a ticker are dropped."""
    tickers: dict[str, Filing] = {}
    dropped = 0
    for hit in hits:
        filing = filing_from_hit(hit, as_of, default_form)
        if filing is None:
            dropped += 1
            continue
        merge_filing(tickers, filing)
    if dropped:
        logger.debug(f"dedupe_hits: dropped {dropped} hits without a ticker")
    return tickers


@dataclass(frozen=True)
class FormPass:
    """One search pass of a multi-form scan, in priority order."""

    label: str
    forms: str
    query: str
    default_form: str
    only_if_absent: bool = False


def dedupe_passes(
    passes: Iterable[tuple[FormPass, list[Mapping[str, Any]]]],
    as_of: date,
) -> dict[str, Filing]:
    """
    Merge several form passes scanned in priority order.

    Passes using the date rule overwrite by date across passes; an
    only_if_absent pass never replaces an entry chosen by an earlier pass.
    """
    tickers: dict[str, Filing] = {}
    for form_pass, hits in passes:
        for hit in hits:
            filing = filing_from_hit(hit, as_of, form_pass.default_form)
            if filing is None:
                continue
            merge_filing(tickers, filing, only_if_absent=form_pass.only_if_absent)
    return tickers


def sorted_filings(tickers: Mapping[str, Filing]) -> list[Filing]:
    """Filings ordered newest first for display."""
    return sorted(tickers.values(), key=lambda f: f.file_date, reverse=True)
