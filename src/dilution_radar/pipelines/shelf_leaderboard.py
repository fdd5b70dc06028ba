"""Weekly shelf offering radar: S-3 / S-1 / S-8 filers ranked by shelf risk."""

import asyncio
import logging
from time import perf_counter
from typing import Any

from dilution_radar.core.dedup import FormPass, dedupe_passes, sorted_filings
from dilution_radar.core.narrative import shelf_fallback_reason
from dilution_radar.core.ranking import attach_reasons, rank_candidates
from dilution_radar.data.edgar_client import SHELF_S1_QUERY, SHELF_S3_QUERY, SHELF_S8_QUERY
from dilution_radar.models import Candidate, Filing, LeaderboardEntry
from dilution_radar.pipelines.common import (
    LeaderboardRun,
    RunContext,
    build_leaderboard_output,
    date_range_label,
    enrich_sequentially,
    publish,
    with_greeting,
    write_output,
)
from dilution_radar.scoring.shelf import score_shelf_risk
from dilution_radar.utils.formatting import format_ratio
from dilution_radar.utils.validators import SearchParams

logger = logging.getLogger(__name__)

BOARD = "shelf"
DEFAULT_DAYS = 7
DEFAULT_MIN_SCORE = 30
DEFAULT_MAX = 10
PASS_DELAY = 0.2

# Priority order matters: S-8 only fills tickers no S-3/S-1 filing claimed
SHELF_PASSES = (
    FormPass("S-3", "S-3,S-3/A", SHELF_S3_QUERY, "S-3"),
    FormPass("S-1", "S-1,S-1/A", SHELF_S1_QUERY, "S-1"),
    FormPass("S-8", "S-8", SHELF_S8_QUERY, "S-8", only_if_absent=True),
)

EMPTY_POST = """📋 Weekly Shelf Offering Scan

No significant shelf filings this week.
Quiet week = less dilution prep.

Back next week with fresh scans."""


async def collect_shelf_filings(ctx: RunContext, days: int) -> list[Filing]:
    """Run the three form passes in priority order and keep one filing per ticker."""
    passes = []
    for i, form_pass in enumerate(SHELF_PASSES):
        if i:
            await asyncio.sleep(PASS_DELAY)
        params = SearchParams.lookback(form_pass.query, form_pass.forms, days, ctx.as_of)
        hits = await ctx.edgar.search(params)
        logger.info(f"{form_pass.label}: {len(hits)} hits")
        passes.append((form_pass, hits))
    tickers = dedupe_passes(passes, ctx.as_of)
    logger.info(f"{len(tickers)} unique shelf filers")
    return sorted_filings(tickers)


def shelf_metrics(candidate: Candidate) -> dict[str, Any]:
    snapshot = candidate.snapshot
    return {
        "runway": format_ratio(snapshot.runway_months),
        "daysSinceFiling": candidate.filing.days_since_filing,
        "marketCap": snapshot.market_cap,
        "debtCashRatio": format_ratio(snapshot.debt_cash_ratio),
        "monthlyBurn": snapshot.monthly_burn,
    }


def shelf_reason(candidate: Candidate) -> str:
    return shelf_fallback_reason(candidate.snapshot, candidate.filing.days_since_filing)


def describe_shelf(candidate: Candidate) -> dict[str, Any]:
    """Metric record handed to the narrative generator."""
    return {
        "ticker": candidate.ticker,
        "score": candidate.score,
        "formType": candidate.filing.form_type,
        **shelf_metrics(candidate),
    }


def render_shelf_post(entries: list[LeaderboardEntry], date_range: str) -> str:
    if not entries:
        return EMPTY_POST
    lines = [f"#{e.rank} ${e.ticker} — Risk: {e.score}/100\n→ {e.reason}" for e in entries[:10]]
    body = "\n\n".join(lines)
    return (
        "📋 WEEKLY SHELF OFFERING RADAR\n"
        "Shelf = legal paperwork to issue new shares later.\n"
        "Gun is loaded — now we watch for the trigger.\n"
        f"Filings from {date_range}\n\n"
        f"{body}\n\n"
        "Companies file shelves quietly. Most investors never read them.\n"
        "We do."
    )


async def run_shelf_leaderboard(
    ctx: RunContext,
    days: int = DEFAULT_DAYS,
    min_score: int = DEFAULT_MIN_SCORE,
    max_count: int = DEFAULT_MAX,
    post: bool = False,
    greeting: str | None = None,
) -> LeaderboardRun:
    """
    Build, save and optionally post the shelf leaderboard.

    Raises:
        EdgarSearchError: filing search unreachable after retries
        PostError: posting was requested and failed
    """
    start = perf_counter()
    date_range = date_range_label(ctx.as_of, days)
    filings = await collect_shelf_filings(ctx, days)

    async def enrich(filing: Filing) -> Candidate | None:
        snapshot = await ctx.market.fetch_snapshot(filing.ticker)
        if not snapshot.market_cap or snapshot.market_cap <= 0:
            return None
        scoring = score_shelf_risk(snapshot, filing.form_type, filing.days_since_filing)
        return Candidate(filing=filing, snapshot=snapshot, scoring=scoring)

    enriched = await enrich_sequentially(filings, enrich, ctx.settings.enrich_delay)

    store = ctx.cooldown_store(BOARD)
    ranking = rank_candidates(
        enriched,
        min_score=min_score,
        max_count=max_count,
        is_suppressed=lambda t: store.is_suppressed(t, ctx.as_of),
    )
    logger.info(f"{len(ranking.ranked)} tickers qualify (score >= {min_score})")

    entries = await attach_reasons(
        ranking.ranked, ctx.generator, shelf_reason, shelf_metrics, describe_shelf
    )
    for e in entries:
        logger.info(f"#{e.rank} ${e.ticker} score={e.score} → {e.reason}")

    output = build_leaderboard_output(
        board=BOARD,
        days=days,
        date_range=date_range,
        total_filings=len(filings),
        enriched=len(enriched),
        entries=entries,
        counter=ctx.counter,
        duration_ms=(perf_counter() - start) * 1000,
    )
    path = write_output(ctx.settings.leaderboard_path(BOARD), output)

    run = LeaderboardRun(
        board=BOARD,
        output=output,
        entries=entries,
        suppressed=ranking.suppressed,
        text=with_greeting(render_shelf_post(entries, date_range), greeting),
        output_path=path,
    )
    publish(run, ctx.poster, store, ctx.as_of, post, ctx.settings.dry_run)
    return run
