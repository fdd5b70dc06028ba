"""
Weekly bankruptcy watchlist ranked by Viral Insolvency Score (VIS).

Three stages keep the expensive analysis small:
  1. Distress universe from going-concern language in recent 10-K/10-Q
     filings, cut to tradable market caps and prices.
  2. Attention filter on liquidity, retail-size market cap or a volume surge.
  3. Full statement analysis for the most active names, then VIS.
"""

import logging
from time import perf_counter
from typing import Any

from dilution_radar.core.dedup import dedupe_hits, sorted_filings
from dilution_radar.core.narrative import bankruptcy_fallback_reason
from dilution_radar.core.ranking import attach_reasons, rank_candidates
from dilution_radar.data.edgar_client import GOING_CONCERN_QUERY
from dilution_radar.models import Candidate, Filing, LeaderboardEntry, RiskBreakdown
from dilution_radar.pipelines.analysis import TickerAnalysis, analyze_ticker
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
from dilution_radar.utils.formatting import format_ratio
from dilution_radar.utils.validators import SearchParams

logger = logging.getLogger(__name__)

BOARD = "bankruptcy"
DISTRESS_FORMS = "10-K,10-Q"
DEFAULT_DAYS = 7
DEFAULT_MIN_VIS = 40
DEFAULT_MAX = 10

# Stage 1: tradable universe
MIN_MARKET_CAP = 5_000_000
MAX_MARKET_CAP = 50_000_000_000
MIN_PRICE = 0.10
MAX_PRICE = 500.0
STAGE1_DELAY = 0.05

# Stage 2: attention
MIN_AVG_VOLUME = 50_000
RETAIL_MIN_CAP = 50_000_000
RETAIL_MAX_CAP = 5_000_000_000
VOLUME_SURGE_RATIO = 1.2

# Stage 3
MAX_ANALYZE = 50
LONG_RUNWAY_MONTHS = 12
LONG_RUNWAY_MIN_VIS = 45

EMPTY_POST = """💀 Weekly Bankruptcy Watchlist

No significant distress signals this week.
Markets stable. Keep watching.

Back next week."""


def passes_distress_filter(candidate: Candidate) -> bool:
    """Market cap within $5M-$50B and price within $0.10-$500."""
    market_cap = candidate.snapshot.market_cap or 0
    price = candidate.snapshot.price or 0
    if market_cap < MIN_MARKET_CAP or market_cap > MAX_MARKET_CAP:
        return False
    return MIN_PRICE <= price <= MAX_PRICE


def passes_attention_filter(candidate: Candidate) -> bool:
    """
    Liquid enough and likely to draw attention.

    Average volume must reach 50K (today's volume stands in when no average
    is reported); then either a retail-size market cap or a volume surge.
    """
    snapshot = candidate.snapshot
    volume = snapshot.volume or 0
    avg_volume = snapshot.avg_volume or volume
    if avg_volume < MIN_AVG_VOLUME:
        return False
    market_cap = snapshot.market_cap or 0
    is_retail_favorite = RETAIL_MIN_CAP <= market_cap <= RETAIL_MAX_CAP
    has_volume_surge = volume > avg_volume * VOLUME_SURGE_RATIO
    return is_retail_favorite or has_volume_surge


def select_for_analysis(candidates: list[Candidate], limit: int = MAX_ANALYZE) -> list[Candidate]:
    """Most active names first (volume / average volume), stable on ties."""
    ordered = sorted(candidates, key=lambda c: c.snapshot.volume_ratio or 0, reverse=True)
    return ordered[:limit]


def vis_breakdown(analysis: TickerAnalysis) -> RiskBreakdown:
    return RiskBreakdown(
        total=analysis.vis.vis,
        factors={
            "bankruptcy": analysis.vis.bankruptcy_score,
            "virality": analysis.vis.virality_score,
        },
        maximums={"bankruptcy": 100, "virality": 100},
        label=analysis.vis.classification,
    )


def bankruptcy_metrics(candidate: Candidate) -> dict[str, Any]:
    analysis: TickerAnalysis = candidate.extras["analysis"]
    metrics = analysis.assessment.metrics
    return {
        "runway": format_ratio(metrics.runway_months) if metrics else None,
        "debtCashRatio": format_ratio(metrics.debt_to_cash_multiple) if metrics else None,
        "monthlyBurn": metrics.monthly_burn if metrics else None,
        "marketCap": candidate.snapshot.market_cap,
        "avgVolume": candidate.snapshot.avg_volume,
        "bankruptcyScore": analysis.vis.bankruptcy_score,
        "viralityScore": analysis.vis.virality_score,
        "classification": analysis.assessment.classification,
        "outcome": analysis.outcome.primary_outcome if analysis.outcome else None,
    }


def bankruptcy_reason(candidate: Candidate) -> str:
    return bankruptcy_fallback_reason(candidate.extras["analysis"].assessment.metrics)


def describe_bankruptcy(candidate: Candidate) -> dict[str, Any]:
    analysis: TickerAnalysis = candidate.extras["analysis"]
    metrics = analysis.assessment.metrics
    runway = metrics.runway_months if metrics else 0.0
    return {
        "ticker": candidate.ticker,
        "vis": candidate.score,
        "runway": format_ratio(runway),
        "debtCashRatio": format_ratio(metrics.debt_to_cash_multiple) if metrics else None,
        "monthlyBurn": metrics.monthly_burn if metrics else None,
        "interestCoverage": format_ratio(metrics.interest_coverage) if metrics else None,
        "longRunwayAnomaly": runway > LONG_RUNWAY_MONTHS and candidate.score >= LONG_RUNWAY_MIN_VIS,
    }


def render_bankruptcy_post(entries: list[LeaderboardEntry], date_range: str) -> str:
    if not entries:
        return EMPTY_POST
    lines = [f"#{e.rank} ${e.ticker} — Risk: {e.score}/100\n→ {e.reason}" for e in entries[:10]]
    body = "\n\n".join(lines)
    return (
        "💀 WEEKLY BANKRUPTCY WATCHLIST\n"
        "Companies showing distress signals worth monitoring.\n"
        f"📅 Week of {date_range}\n\n"
        f"{body}\n\n"
        "⚠️ Not advice — pattern recognition only. 💀 Distress doesn't announce itself."
    )


async def collect_distress_universe(ctx: RunContext, days: int) -> list[Filing]:
    params = SearchParams.lookback(GOING_CONCERN_QUERY, DISTRESS_FORMS, days, ctx.as_of)
    hits = await ctx.edgar.search(params)
    tickers = dedupe_hits(hits, ctx.as_of)
    logger.info(f"Distress universe: {len(hits)} hits, {len(tickers)} unique tickers")
    return sorted_filings(tickers)


async def run_bankruptcy_leaderboard(
    ctx: RunContext,
    days: int = DEFAULT_DAYS,
    min_score: int = DEFAULT_MIN_VIS,
    max_count: int = DEFAULT_MAX,
    post: bool = False,
    greeting: str | None = None,
    max_analyze: int = MAX_ANALYZE,
) -> LeaderboardRun:
    """
    Build, save and optionally post the bankruptcy watchlist.

    Raises:
        EdgarSearchError: filing search unreachable after retries
        PostError: posting was requested and failed
    """
    start = perf_counter()
    date_range = date_range_label(ctx.as_of, days)
    universe = await collect_distress_universe(ctx, days)

    async def quote(filing: Filing) -> Candidate | None:
        snapshot = await ctx.market.fetch_snapshot(filing.ticker)
        return Candidate(filing=filing, snapshot=snapshot)

    quoted = await enrich_sequentially(universe, quote, STAGE1_DELAY)
    stage1 = [c for c in quoted if passes_distress_filter(c)]
    logger.info(f"Stage 1 passed: {len(stage1)} tickers")

    stage2 = [c for c in stage1 if passes_attention_filter(c)]
    logger.info(f"Stage 2 passed: {len(stage2)} tickers")

    to_analyze = select_for_analysis(stage2, max_analyze)
    by_ticker = {c.ticker: c for c in to_analyze}

    async def full_analysis(filing: Filing) -> Candidate | None:
        candidate = by_ticker[filing.ticker]
        analysis = await analyze_ticker(ctx.market, filing.ticker, candidate.snapshot)
        if analysis.vis.vis <= 0:
            return None
        return Candidate(
            filing=filing,
            snapshot=analysis.snapshot,
            scoring=vis_breakdown(analysis),
            extras={"analysis": analysis},
        )

    analyzed = await enrich_sequentially(
        [c.filing for c in to_analyze], full_analysis, ctx.settings.enrich_delay
    )

    store = ctx.cooldown_store(BOARD)
    ranking = rank_candidates(
        analyzed,
        min_score=min_score,
        max_count=max_count,
        is_suppressed=lambda t: store.is_suppressed(t, ctx.as_of),
    )
    logger.info(f"{len(ranking.ranked)} tickers qualify (VIS >= {min_score})")

    entries = await attach_reasons(
        ranking.ranked, ctx.generator, bankruptcy_reason, bankruptcy_metrics, describe_bankruptcy
    )
    for e in entries:
        logger.info(f"#{e.rank} ${e.ticker} VIS={e.score} → {e.reason}")

    output = build_leaderboard_output(
        board=BOARD,
        days=days,
        date_range=date_range,
        total_filings=len(universe),
        enriched=len(analyzed),
        entries=entries,
        counter=ctx.counter,
        duration_ms=(perf_counter() - start) * 1000,
        extra={
            "pipeline": {
                "baseUniverse": len(universe),
                "stage1Passed": len(stage1),
                "stage2Passed": len(stage2),
                "fullAnalyzed": len(analyzed),
                "qualified": len(entries),
            }
        },
    )
    path = write_output(ctx.settings.leaderboard_path(BOARD), output)

    run = LeaderboardRun(
        board=BOARD,
        output=output,
        entries=entries,
        suppressed=ranking.suppressed,
        text=with_greeting(render_bankruptcy_post(entries, date_range), greeting),
        output_path=path,
    )
    publish(run, ctx.poster, store, ctx.as_of, post, ctx.settings.dry_run)
    return run
