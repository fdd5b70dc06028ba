"""Shared plumbing for leaderboard and scanner runs."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol, TypeVar

from dilution_radar.config import Settings
from dilution_radar.core.cooldown import CooldownStore
from dilution_radar.core.narrative import NarrativeGenerator
from dilution_radar.core.posting import Poster, PreviewPoster
from dilution_radar.data.retry import ApiCallCounter
from dilution_radar.data.yfinance_client import MarketDataError
from dilution_radar.models import Candidate, Filing, LeaderboardEntry
from dilution_radar.utils.files import write_json_atomic
from dilution_radar.utils.provenance import build_meta, build_provenance
from dilution_radar.utils.validators import SearchParams

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FilingSearch(Protocol):
    async def search(self, params: SearchParams) -> list[dict[str, Any]]: ...


@dataclass
class RunContext:
    """
    Collaborators for one run.

    Pipelines never build clients themselves; the CLI (or a test) wires real
    or fake implementations here.
    """

    settings: Settings
    edgar: FilingSearch
    market: Any
    as_of: date
    generator: NarrativeGenerator | None = None
    poster: Poster | None = None
    counter: ApiCallCounter = field(default_factory=ApiCallCounter)

    def cooldown_store(self, board: str) -> CooldownStore:
        return CooldownStore(
            self.settings.posted_path(board),
            cooldown_days=self.settings.cooldown_for(board),
        )


@dataclass
class LeaderboardRun:
    """Result of one leaderboard run: the written output and its post text."""

    board: str
    output: dict[str, Any]
    entries: list[LeaderboardEntry]
    suppressed: list[str]
    text: str
    output_path: Path | None = None
    post_id: str | None = None

    @property
    def has_entries(self) -> bool:
        return bool(self.entries)


def date_range_label(as_of: date, days: int) -> str:
    """Display range "M/D–M/D" covering the lookback window."""
    start = as_of - timedelta(days=days)
    return f"{start.month}/{start.day}–{as_of.month}/{as_of.day}"


def build_leaderboard_output(
    *,
    board: str,
    days: int,
    date_range: str,
    total_filings: int,
    enriched: int,
    entries: list[LeaderboardEntry],
    counter: ApiCallCounter,
    duration_ms: float | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the persisted leaderboard document."""
    output: dict[str, Any] = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "period": f"{days}d",
        "dateRange": date_range,
        "totalFilings": total_filings,
        "enriched": enriched,
        "qualified": len(entries),
        "leaderboard": [e.to_dict() for e in entries],
    }
    if extra:
        output.update(extra)
    meta = build_meta(f"{board}_leaderboard", duration_ms)
    meta["provenance"] = build_provenance("upstream", api_calls=counter.to_dict())
    output["meta"] = meta
    return output


def write_output(path: Path, output: dict[str, Any]) -> Path:
    write_json_atomic(path, output)
    logger.info(f"Saved leaderboard to {path}")
    return path


async def enrich_sequentially(
    filings: Iterable[Filing],
    enrich: Callable[[Filing], Awaitable[Candidate | None]],
    delay: float,
) -> list[Candidate]:
    """
    Enrich filings one ticker at a time with a fixed pause between tickers.

    A ticker whose enrichment raises is logged and skipped; a None result
    means the ticker lacked required data.
    """
    enriched: list[Candidate] = []
    for i, filing in enumerate(filings):
        if i and delay > 0:
            await asyncio.sleep(delay)
        try:
            candidate = await enrich(filing)
        except Exception as e:
            logger.warning(f"{filing.ticker}: enrichment failed, skipping: {e}")
            continue
        if candidate is None:
            logger.info(f"{filing.ticker}: skip (missing market data)")
            continue
        enriched.append(candidate)
    logger.info(f"Enriched {len(enriched)} tickers")
    return enriched


async def optional_fetch(awaitable: Awaitable[T], default: T, ticker: str) -> T:
    """Await a secondary fetch; missing data degrades to default."""
    try:
        return await awaitable
    except MarketDataError as e:
        logger.info(f"{ticker}: {e}")
        return default


def with_greeting(text: str, greeting: str | None) -> str:
    return f"{greeting}\n\n{text}" if greeting else text


def publish(
    run: LeaderboardRun,
    poster: Poster | None,
    store: CooldownStore,
    as_of: date,
    post: bool,
    dry_run: bool,
) -> str | None:
    """
    Post the leaderboard text and put its tickers on cooldown.

    Nothing is posted unless post is requested and dry_run is off; otherwise
    the text goes to a PreviewPoster. Cooldown entries are written only after
    the post succeeds; PostError propagates.
    """
    if not post or dry_run:
        if not post:
            logger.info("Preview only; pass --post to publish")
        else:
            logger.info("[DRY_RUN] Would post. Set DRY_RUN=false to post.")
        PreviewPoster().post(run.text)
        return None
    if poster is None:
        raise ValueError("Posting requested but no poster is configured")

    post_id = poster.post(run.text)
    run.post_id = post_id
    tickers = [e.ticker for e in run.entries]
    if tickers:
        store.record_alert(tickers, as_of)
        logger.info(f"{len(tickers)} tickers on {store.cooldown_days}-day cooldown")
    return post_id
