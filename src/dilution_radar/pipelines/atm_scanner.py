"""
ATM-first scanner.

Starts from recent 424B5 prospectus supplements (at-the-market sales) and
looks for the filers whose stock ran hard in the last seven sessions, then
flags the ones that are just starting to roll over.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

from dilution_radar.core.phase import (
    PhaseAnalysisError,
    analyze_window,
    classify_momentum,
    is_already_crashed,
    is_early_rollover,
    phase_status,
)
from dilution_radar.models import Candidate, Filing
from dilution_radar.pipelines.analysis import TickerAnalysis, analyze_ticker, render_analysis
from dilution_radar.pipelines.common import RunContext, enrich_sequentially, optional_fetch
from dilution_radar.pipelines.dilution_leaderboard import collect_atm_filings
from dilution_radar.utils.files import write_json_atomic
from dilution_radar.utils.formatting import format_currency, format_pct
from dilution_radar.utils.ohlcv import window_from_newest_first
from dilution_radar.utils.provenance import build_meta

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30
WINDOW_DAYS = 7
ENRICH_DELAY = 0.1
ANALYZE_TOP = 5
ANALYZE_DELAY = 1.0
MOMENTUM_BUCKETS = ("pumping", "rising", "flat", "falling")
ACTIONABLE_MAX_PULLBACK = 50


@dataclass
class AtmScanResult:
    days: int
    total_filings: int
    candidates: list[Candidate] = field(default_factory=list)
    analyses: list[TickerAnalysis] = field(default_factory=list)

    def bucket(self, name: str) -> list[Candidate]:
        return [c for c in self.candidates if c.extras.get("momentum") == name]

    @property
    def early_rollovers(self) -> list[Candidate]:
        return [c for c in self.candidates if is_early_rollover(c.phase)]

    @property
    def already_crashed(self) -> list[Candidate]:
        return [c for c in self.bucket("pumping") if is_already_crashed(c.phase)]

    @property
    def actionable(self) -> list[Candidate]:
        return [
            c for c in self.bucket("pumping") if c.phase.pullback_pct <= ACTIONABLE_MAX_PULLBACK
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": f"{self.days}d",
            "totalFilings": self.total_filings,
            "withPriceData": len(self.candidates),
            "buckets": {
                name: [candidate_row(c) for c in self.bucket(name)] for name in MOMENTUM_BUCKETS
            },
            "earlyRollovers": [c.ticker for c in self.early_rollovers],
            "alreadyCrashed": [c.ticker for c in self.already_crashed],
            "actionable": [c.ticker for c in self.actionable],
            "analyses": [a.to_dict() for a in self.analyses],
        }


def candidate_row(candidate: Candidate) -> dict[str, Any]:
    phase = candidate.phase
    snapshot = candidate.snapshot
    return {
        "ticker": candidate.ticker,
        "companyName": candidate.filing.company_name,
        "fileDate": candidate.filing.file_date,
        "daysSinceFiling": candidate.filing.days_since_filing,
        "price": snapshot.price,
        "marketCap": snapshot.market_cap,
        "volume": snapshot.volume,
        "avgVolume": snapshot.avg_volume,
        "dayPct": snapshot.day_change_pct,
        "status": phase_status(phase),
        **phase.to_dict(),
    }


async def enrich_atm_momentum(ctx: RunContext, filing: Filing) -> Candidate | None:
    """Quote plus the last seven sessions; None when either is missing."""
    snapshot = await ctx.market.fetch_snapshot(filing.ticker)
    if snapshot.price is None:
        return None
    rows = await optional_fetch(ctx.market.fetch_daily_rows(filing.ticker), [], filing.ticker)
    window = window_from_newest_first(rows, WINDOW_DAYS)
    try:
        phase = analyze_window(window)
    except PhaseAnalysisError as e:
        logger.info(f"{filing.ticker}: {e}")
        return None
    return Candidate(
        filing=filing,
        snapshot=snapshot,
        phase=phase,
        extras={"momentum": classify_momentum(phase.peak_gain_pct)},
    )


async def run_atm_scan(ctx: RunContext, days: int = DEFAULT_DAYS, analyze: bool = False) -> AtmScanResult:
    """
    Scan ATM filers for momentum, sorted by peak gain.

    With analyze, the top pumping names also get a full insolvency analysis.

    Raises:
        EdgarSearchError: filing search unreachable after retries
    """
    start = perf_counter()
    filings = await collect_atm_filings(ctx, days)
    candidates = await enrich_sequentially(
        filings, lambda f: enrich_atm_momentum(ctx, f), ENRICH_DELAY
    )
    candidates.sort(key=lambda c: c.phase.peak_gain_pct, reverse=True)
    result = AtmScanResult(days=days, total_filings=len(filings), candidates=candidates)

    if analyze:
        for i, candidate in enumerate(result.bucket("pumping")[:ANALYZE_TOP]):
            if i:
                await asyncio.sleep(ANALYZE_DELAY)
            logger.info(f"Analyzing {candidate.ticker} (424B5 filed {candidate.filing.file_date})")
            try:
                result.analyses.append(
                    await analyze_ticker(ctx.market, candidate.ticker, candidate.snapshot)
                )
            except Exception as e:
                logger.warning(f"{candidate.ticker}: analysis failed: {e}")

    payload = result.to_dict()
    payload["meta"] = build_meta("atm_scanner", (perf_counter() - start) * 1000)
    write_json_atomic(ctx.settings.data_dir / "atm_scan.json", payload)
    return result


def render_atm_report(result: AtmScanResult) -> str:
    """Terminal summary: momentum buckets, early rollovers, crashed and actionable names."""
    lines = [
        f"ATM filings ({result.days} days): {result.total_filings}",
        f"With valid price data:  {len(result.candidates)}",
    ]
    for name in MOMENTUM_BUCKETS:
        bucket = result.bucket(name)
        lines.append(f"{name.capitalize():<8} {len(bucket)}")
        for c in bucket[:15]:
            lines.append(
                f"  {c.ticker:<6} {c.filing.file_date:<11} peak {format_pct(c.phase.peak_gain_pct):>8} "
                f"now {format_pct(c.phase.current_gain_pct):>8} day {c.phase.peak_day} "
                f"{phase_status(c.phase):<9} {format_currency(c.snapshot.market_cap)}"
            )

    if result.early_rollovers:
        lines.append("Early rollovers (peaked late, just starting to pull back):")
        for i, c in enumerate(result.early_rollovers, start=1):
            lines.append(
                f"  {i}. {c.ticker} peak {format_pct(c.phase.peak_gain_pct)} on day {c.phase.peak_day}"
                f" → now {format_pct(c.phase.current_gain_pct)} ({format_pct(-c.phase.pullback_pct)} pullback)"
            )
    if result.already_crashed:
        lines.append("Already crashed (pullback > 50%):")
        for i, c in enumerate(result.already_crashed, start=1):
            lines.append(f"  {i}. {c.ticker} peak {format_pct(c.phase.peak_gain_pct)} → now {format_pct(c.phase.current_gain_pct)}")
    if result.actionable:
        lines.append("Actionable (100%+ peak, pullback <= 50%):")
        for i, c in enumerate(result.actionable, start=1):
            tag = " ← early rollover" if c.phase.peak_day >= 5 and c.phase.pullback_pct >= 5 else ""
            lines.append(
                f"  {i}. {c.ticker} peak {format_pct(c.phase.peak_gain_pct)}, now "
                f"{format_pct(c.phase.current_gain_pct)}, 424B5 {c.filing.file_date}{tag}"
            )
    elif result.bucket("pumping"):
        lines.append("All 100%+ candidates have already crashed > 50%; no actionable setups.")

    for analysis in result.analyses:
        lines.append(render_analysis(analysis))
    return "\n".join(lines)
