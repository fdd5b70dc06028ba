"""Momentum-first scanner: today's gainers that ran 100%+ in five sessions, scored for insolvency."""

import asyncio
import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

from dilution_radar.data.yfinance_client import snapshot_from_info
from dilution_radar.models import Candle, TickerSnapshot
from dilution_radar.pipelines.analysis import TickerAnalysis, analyze_ticker, render_analysis
from dilution_radar.pipelines.common import RunContext
from dilution_radar.utils.files import write_json_atomic
from dilution_radar.utils.formatting import format_currency, format_months, format_pct
from dilution_radar.utils.ohlcv import window_from_newest_first
from dilution_radar.utils.provenance import build_meta

logger = logging.getLogger(__name__)

# Tier -> (minimum 5-session gain %, label)
TIERS = {
    1: (300.0, "EXTREME BLOWOFF"),
    2: (200.0, "MAJOR RUN"),
    3: (100.0, "SOLID MOMENTUM"),
}
DEFAULT_TIER = 3

TRIGGER_THRESHOLD = 65
WATCH_THRESHOLD = 50
MONITOR_THRESHOLD = 35

GAINERS_COUNT = 100
SCAN_DELAY = 0.1
ANALYZE_DELAY = 0.5
FIVE_SESSIONS = 5


def classify_tier(weekly_pct: float | None) -> int:
    """1 (>=300%), 2 (>=200%), 3 (>=100%), else 0."""
    if weekly_pct is None:
        return 0
    for tier in sorted(TIERS):
        if weekly_pct >= TIERS[tier][0]:
            return tier
    return 0


def verdict_for(score: int) -> str:
    if score >= TRIGGER_THRESHOLD:
        return "TRIGGER"
    if score >= WATCH_THRESHOLD:
        return "WATCH"
    if score >= MONITOR_THRESHOLD:
        return "MONITOR"
    return "PASS"


def pct_change(candles: list[Candle], sessions: int) -> float | None:
    """Close-to-close % change over the trailing `sessions` bars of an oldest-first list."""
    if len(candles) <= sessions:
        return None
    base = candles[-sessions - 1].close
    if base <= 0:
        return None
    return (candles[-1].close - base) / base * 100


@dataclass
class Runner:
    ticker: str
    snapshot: TickerSnapshot
    weekly_pct: float
    month_pct: float | None
    tier: int
    analysis: TickerAnalysis | None = None

    @property
    def score(self) -> int:
        return self.analysis.assessment.score if self.analysis is not None else 0

    @property
    def verdict(self) -> str:
        return verdict_for(self.score)

    def to_dict(self) -> dict[str, Any]:
        metrics = self.analysis.assessment.metrics if self.analysis is not None else None
        return {
            "ticker": self.ticker,
            "tier": self.tier,
            "tierLabel": TIERS[self.tier][1],
            "weeklyPct": round(self.weekly_pct, 1),
            "monthPct": round(self.month_pct, 1) if self.month_pct is not None else None,
            "price": self.snapshot.price,
            "dayPct": self.snapshot.day_change_pct,
            "marketCap": self.snapshot.market_cap,
            "score": self.score,
            "verdict": self.verdict,
            "runwayMonths": round(metrics.runway_months, 1) if metrics is not None else None,
        }


@dataclass
class MomentumScanResult:
    min_tier: int
    gainers: int
    runners: list[Runner] = field(default_factory=list)

    def by_verdict(self, verdict: str) -> list[Runner]:
        return [r for r in self.runners if r.verdict == verdict]

    def to_dict(self) -> dict[str, Any]:
        return {
            "minTier": self.min_tier,
            "gainers": self.gainers,
            "runners": [r.to_dict() for r in self.runners],
            "summary": {
                v: len(self.by_verdict(v)) for v in ("TRIGGER", "WATCH", "MONITOR", "PASS")
            },
        }


async def find_runners(ctx: RunContext, min_tier: int = DEFAULT_TIER) -> tuple[int, list[Runner]]:
    """Daily gainers whose five-session gain reaches the tier floor, strongest first."""
    if min_tier not in TIERS:
        raise ValueError(f"tier must be one of {sorted(TIERS)}, got {min_tier}")

    gainers = await ctx.market.fetch_day_gainers(GAINERS_COUNT)
    logger.info(f"Found {len(gainers)} daily gainers")

    runners: list[Runner] = []
    for i, quote in enumerate(gainers):
        symbol = str(quote.get("symbol") or "").upper()
        if not symbol:
            continue
        if i:
            await asyncio.sleep(SCAN_DELAY)
        try:
            rows = await ctx.market.fetch_daily_rows(symbol, period="1mo")
        except Exception as e:
            logger.info(f"{symbol}: skip ({e})")
            continue
        candles = window_from_newest_first(rows, len(rows))
        weekly = pct_change(candles, FIVE_SESSIONS)
        tier = classify_tier(weekly)
        if tier == 0 or tier > min_tier:
            continue
        month = pct_change(candles, len(candles) - 1) if len(candles) > 1 else None
        runners.append(
            Runner(
                ticker=symbol,
                snapshot=snapshot_from_info(symbol, quote),
                weekly_pct=weekly,
                month_pct=month,
                tier=tier,
            )
        )
        logger.info(f"Tier {tier} {symbol}: {format_pct(weekly)} (5D)")

    runners.sort(key=lambda r: r.weekly_pct, reverse=True)
    return len(gainers), runners


async def run_momentum_scan(
    ctx: RunContext,
    min_tier: int = DEFAULT_TIER,
    full: bool = False,
) -> MomentumScanResult:
    """
    Find multi-day runners and score each for insolvency risk.

    Runners are returned sorted by score, highest first. With full, the
    report for every TRIGGER is logged in full.
    """
    start = perf_counter()
    gainer_count, runners = await find_runners(ctx, min_tier)
    result = MomentumScanResult(min_tier=min_tier, gainers=gainer_count)

    for i, runner in enumerate(runners):
        if i:
            await asyncio.sleep(ANALYZE_DELAY)
        try:
            runner.analysis = await analyze_ticker(ctx.market, runner.ticker)
        except Exception as e:
            logger.warning(f"{runner.ticker}: analysis failed: {e}")
            continue
        result.runners.append(runner)
        if full and runner.verdict == "TRIGGER":
            logger.info(f"TRIGGER FOUND: {runner.ticker}\n{render_analysis(runner.analysis)}")

    result.runners.sort(key=lambda r: r.score, reverse=True)

    payload = result.to_dict()
    payload["meta"] = build_meta("momentum_scanner", (perf_counter() - start) * 1000)
    write_json_atomic(ctx.settings.data_dir / "momentum_scan.json", payload)
    return result


def render_momentum_report(result: MomentumScanResult) -> str:
    floor, _ = TIERS[result.min_tier]
    lines = [f"Runners {floor:.0f}%+ over 5 sessions (tier {result.min_tier}+) from {result.gainers} gainers"]
    if not result.runners:
        lines.append("No runners found meeting criteria")
        return "\n".join(lines)
    for runner in result.runners:
        metrics = runner.analysis.assessment.metrics if runner.analysis else None
        runway = format_months(metrics.runway_months) if metrics is not None else "N/A"
        lines.append(
            f"  {runner.ticker:<6} T{runner.tier} {format_pct(runner.weekly_pct):>9} "
            f"score {runner.score:>3} {runner.verdict:<8} runway {runway:<12} "
            f"{format_currency(runner.snapshot.market_cap)}"
        )
    lines.append(
        "TRIGGER {t} · WATCH {w} · MONITOR {m} · PASS {p}".format(
            t=len(result.by_verdict("TRIGGER")),
            w=len(result.by_verdict("WATCH")),
            m=len(result.by_verdict("MONITOR")),
            p=len(result.by_verdict("PASS")),
        )
    )
    return "\n".join(lines)
