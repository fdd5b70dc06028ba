"""Weekly ATM dilution leaderboard: 424B5 filers ranked by Dilution Severity Score."""

import asyncio
import logging
from dataclasses import replace
from time import perf_counter
from typing import Any

from dilution_radar.core.dedup import dedupe_hits, sorted_filings
from dilution_radar.core.narrative import dilution_fallback_reason
from dilution_radar.core.phase import PhaseAnalysisError, analyze_window
from dilution_radar.core.ranking import attach_reasons, rank_candidates
from dilution_radar.data.edgar_client import ATM_QUERY
from dilution_radar.data.yfinance_client import QuarterlyStatements
from dilution_radar.models import (
    Candidate,
    Filing,
    LeaderboardEntry,
    PhaseMetrics,
    TickerSnapshot,
    first_number,
    safe_float,
)
from dilution_radar.pipelines.common import (
    LeaderboardRun,
    RunContext,
    build_leaderboard_output,
    date_range_label,
    enrich_sequentially,
    optional_fetch,
    publish,
    with_greeting,
    write_output,
)
from dilution_radar.scoring.dilution import group_totals, score_dilution_severity
from dilution_radar.utils.formatting import format_ratio
from dilution_radar.utils.ohlcv import candles_since, window_from_newest_first
from dilution_radar.utils.validators import SearchParams

logger = logging.getLogger(__name__)

BOARD = "dilution"
ATM_FORMS = "424B5"
DEFAULT_DAYS = 7
DEFAULT_MIN_SCORE = 30
DEFAULT_MAX = 10

HISTORY_CANDLES = 30
MIN_HISTORY_CANDLES = 7
CASH_FLOW_QUARTERS = 4

EMPTY_POST = """🔎 Weekly ATM Dilution Scan

No significant ATM setups this week.
Quiet week = less dilution pressure.

Back next week with fresh scans."""


def apply_quarterly_fundamentals(
    snapshot: TickerSnapshot,
    statements: QuarterlyStatements,
) -> TickerSnapshot:
    """
    Replace TTM fundamentals with the latest quarter's balance sheet and the
    average burning quarter over the last four cash flow statements.

    Balance sheet rows the quarter does not report keep their TTM values.
    """
    updates: dict[str, Any] = {}
    if statements.balance_sheets:
        latest = statements.balance_sheets[0]
        cash = first_number(latest, "cashAndCashEquivalents", "cashAndShortTermInvestments")
        if cash is not None:
            updates["cash"] = cash
        total_debt = first_number(latest, "totalDebt")
        if total_debt is not None:
            updates["total_debt"] = total_debt

    if statements.cash_flows:
        ocf = [safe_float(cf.get("operatingCashFlow")) or 0.0 for cf in statements.cash_flows[:CASH_FLOW_QUARTERS]]
        burning = [v for v in ocf if v < 0]
        updates["operating_cash_flow"] = sum(burning) / len(burning) if burning else 0.0
        updates["ocf_period_months"] = 3

    return replace(snapshot, **updates) if updates else snapshot


def phase_since_filing(rows: list[dict[str, Any]], file_date: str) -> PhaseMetrics | None:
    """
    Phase metrics from the filing date to today over the last 30 sessions.

    Returns None when history is too short or the window cannot be measured.
    """
    candles = window_from_newest_first(rows, HISTORY_CANDLES)
    if len(candles) < MIN_HISTORY_CANDLES:
        return None
    window = candles_since(candles, file_date)
    if len(window) < 2:
        return None
    try:
        return analyze_window(window)
    except PhaseAnalysisError as e:
        logger.info(f"Phase analysis skipped from {file_date}: {e}")
        return None


def dilution_metrics(candidate: Candidate) -> dict[str, Any]:
    snapshot = candidate.snapshot
    phase = candidate.phase
    groups = group_totals(candidate.scoring) if candidate.scoring is not None else {}
    return {
        "runway": format_ratio(snapshot.runway_months),
        "pullback": format_ratio(phase.pullback_pct if phase else 0.0),
        "peakGain": format_ratio(phase.peak_gain_pct if phase else 0.0),
        "daysSinceFiling": candidate.filing.days_since_filing,
        "marketCap": snapshot.market_cap,
        "debtCashRatio": format_ratio(snapshot.debt_cash_ratio),
        **groups,
    }


def dilution_reason(candidate: Candidate) -> str:
    return dilution_fallback_reason(
        candidate.snapshot, candidate.phase, candidate.filing.days_since_filing
    )


def describe_dilution(candidate: Candidate) -> dict[str, Any]:
    return {
        "ticker": candidate.ticker,
        "dss": candidate.score,
        **dilution_metrics(candidate),
    }


def render_dilution_post(entries: list[LeaderboardEntry], date_range: str) -> str:
    if not entries:
        return EMPTY_POST
    lines = [f"#{e.rank} ${e.ticker} — DSS: {e.score}\n→ {e.reason}" for e in entries[:10]]
    body = "\n\n".join(lines)
    return (
        "🔎 WEEKLY ATM DILUTION LEADERBOARD\n"
        "ATMs let companies sell shares anytime — diluting you.\n"
        "These aren't announced. We dig through SEC filings.\n"
        f"Filings from {date_range} · DSS = dilution pressure × distress\n\n"
        f"{body}\n\n"
        "Not advice — pattern recognition only."
    )


async def collect_atm_filings(ctx: RunContext, days: int) -> list[Filing]:
    params = SearchParams.lookback(ATM_QUERY, ATM_FORMS, days, ctx.as_of)
    hits = await ctx.edgar.search(params)
    tickers = dedupe_hits(hits, ctx.as_of, default_form=ATM_FORMS)
    logger.info(f"{len(hits)} ATM hits, {len(tickers)} unique tickers")
    return sorted_filings(tickers)


async def enrich_atm_filing(ctx: RunContext, filing: Filing) -> Candidate | None:
    """Quote, quarterly fundamentals and price phase since the filing, then DSS."""
    snapshot = await ctx.market.fetch_snapshot(filing.ticker)
    if not snapshot.market_cap or snapshot.market_cap <= 0:
        return None
    statements, rows = await asyncio.gather(
        optional_fetch(ctx.market.fetch_statements(filing.ticker), QuarterlyStatements(), filing.ticker),
        optional_fetch(ctx.market.fetch_daily_rows(filing.ticker), [], filing.ticker),
    )
    snapshot = apply_quarterly_fundamentals(snapshot, statements)
    phase = phase_since_filing(rows, filing.file_date)
    scoring = score_dilution_severity(snapshot, phase, filing.days_since_filing)
    return Candidate(filing=filing, snapshot=snapshot, phase=phase, scoring=scoring)


async def run_dilution_leaderboard(
    ctx: RunContext,
    days: int = DEFAULT_DAYS,
    min_score: int = DEFAULT_MIN_SCORE,
    max_count: int = DEFAULT_MAX,
    post: bool = False,
    greeting: str | None = None,
) -> LeaderboardRun:
    """
    Build, save and optionally post the ATM dilution leaderboard.

    Raises:
        EdgarSearchError: filing search unreachable after retries
        PostError: posting was requested and failed
    """
    start = perf_counter()
    date_range = date_range_label(ctx.as_of, days)
    filings = await collect_atm_filings(ctx, days)

    enriched = await enrich_sequentially(
        filings, lambda f: enrich_atm_filing(ctx, f), ctx.settings.enrich_delay
    )

    store = ctx.cooldown_store(BOARD)
    ranking = rank_candidates(
        enriched,
        min_score=min_score,
        max_count=max_count,
        is_suppressed=lambda t: store.is_suppressed(t, ctx.as_of),
    )
    logger.info(f"{len(ranking.ranked)} tickers qualify (DSS >= {min_score})")

    entries = await attach_reasons(
        ranking.ranked, ctx.generator, dilution_reason, dilution_metrics, describe_dilution
    )
    for e in entries:
        logger.info(f"#{e.rank} ${e.ticker} DSS={e.score} → {e.reason}")

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
        text=with_greeting(render_dilution_post(entries, date_range), greeting),
        output_path=path,
    )
    publish(run, ctx.poster, store, ctx.as_of, post, ctx.settings.dry_run)
    return run
