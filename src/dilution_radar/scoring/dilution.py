"""Dilution Severity Score (DSS) for tickers with a recent ATM prospectus."""

import operator

from dilution_radar.models import PhaseMetrics, RiskBreakdown, TickerSnapshot
from dilution_radar.scoring.buckets import step_score

DSS_MAXIMUMS = {
    # distress (40)
    "runway": 15,
    "burnRatio": 15,
    "debt": 10,
    # ATM impact (40)
    "pullback": 15,
    "peakGain": 15,
    "recency": 10,
    # attention (20)
    "volume": 10,
    "mcapSweetSpot": 10,
}

DSS_GROUPS = {
    "distress": ("runway", "burnRatio", "debt"),
    "impact": ("pullback", "peakGain", "recency"),
    "attention": ("volume", "mcapSweetSpot"),
}


def _mcap_sweet_spot(market_cap: float | None) -> int:
    """Retail attention concentrates between $50M and $2B."""
    if not market_cap:
        return 0
    if 50e6 <= market_cap <= 500e6:
        return 10
    if 500e6 <= market_cap <= 2e9:
        return 7
    if 10e6 <= market_cap < 50e6:
        return 5
    return 0


def cash_burn_ratio(snapshot: TickerSnapshot) -> float | None:
    """Months of cash at the current burn; None when not burning or unknown."""
    burn = snapshot.monthly_burn
    if not burn or snapshot.cash is None:
        return None
    return snapshot.cash / burn


def score_dilution_severity(
    snapshot: TickerSnapshot,
    phase: PhaseMetrics | None,
    days_since_filing: int | None,
) -> RiskBreakdown:
    """
    Score an ATM filer from 0 to 100 across distress, impact and attention.

    The phase metrics come from a window starting at the filing date; a
    missing window scores zero impact for pullback and peak gain.
    """
    pullback = phase.pullback_pct if phase is not None else None
    peak_gain = phase.peak_gain_pct if phase is not None else None

    factors = {
        "runway": step_score(snapshot.runway_months, [(3, 15), (6, 12), (12, 8), (18, 4)], operator.le),
        "burnRatio": step_score(cash_burn_ratio(snapshot), [(3, 15), (6, 10), (12, 5)], operator.lt),
        "debt": step_score(snapshot.debt_cash_ratio, [(5, 10), (2, 7), (1, 4)], operator.gt),
        "pullback": step_score(pullback, [(30, 15), (20, 12), (10, 8), (5, 4)], operator.ge),
        "peakGain": step_score(peak_gain, [(100, 15), (50, 12), (30, 8), (15, 4)], operator.ge),
        "recency": step_score(days_since_filing, [(3, 10), (7, 7), (14, 4)], operator.le),
        "volume": step_score(snapshot.volume_ratio, [(3, 10), (2, 7), (1.5, 5), (1, 3)], operator.ge),
        "mcapSweetSpot": _mcap_sweet_spot(snapshot.market_cap),
    }
    return RiskBreakdown.from_factors(factors, DSS_MAXIMUMS)


def group_totals(breakdown: RiskBreakdown) -> dict[str, int]:
    """Distress / impact / attention subtotals of a DSS breakdown."""
    return {
        group: sum(breakdown.factors.get(name, 0) for name in names)
        for group, names in DSS_GROUPS.items()
    }
