"""Virality score and the Viral Insolvency Score (VIS) blend."""

import operator
from dataclasses import dataclass

from dilution_radar.models import RiskBreakdown, TickerSnapshot, round_half_up, safe_float
from dilution_radar.scoring.buckets import step_score

VIRALITY_MAXIMUMS = {
    "volume": 35,
    "marketCap": 25,
    "news": 20,
    "options": 20,
}

HIGH_VIRAL = "HIGH_VIRAL"
MODERATE_VIRAL = "MODERATE_VIRAL"
LOW_VIRAL = "LOW_VIRAL"

PRIME_ALERT = "PRIME_ALERT"
WATCHLIST = "WATCHLIST"
STORE_ONLY = "STORE_ONLY"

NEWS_POINTS_PER_ARTICLE = 5


@dataclass(frozen=True)
class VisResult:
    vis: int
    classification: str
    should_post: bool
    bankruptcy_score: int
    virality_score: int

    def to_dict(self) -> dict:
        return {
            "vis": self.vis,
            "classification": self.classification,
            "shouldPost": self.should_post,
            "bankruptcyScore": self.bankruptcy_score,
            "viralityScore": self.virality_score,
        }


def infer_has_options(snapshot: TickerSnapshot) -> bool:
    """Heuristic used when no options chain lookup is available."""
    market_cap = safe_float(snapshot.market_cap) or 0.0
    avg_volume = safe_float(snapshot.avg_volume) or 0.0
    return market_cap > 100e6 and avg_volume > 100_000


def virality_tier(score: int) -> str:
    if score >= 70:
        return HIGH_VIRAL
    if score >= 45:
        return MODERATE_VIRAL
    return LOW_VIRAL


def score_virality(snapshot: TickerSnapshot) -> RiskBreakdown:
    """
    Score how much attention a ticker can draw, 0 to 100.

    Uses average volume, market cap, recent news count and options
    availability; an unknown options flag falls back to `infer_has_options`.
    """
    has_options = snapshot.has_options
    if has_options is None:
        has_options = infer_has_options(snapshot)
    news = int(safe_float(snapshot.news_count) or 0)

    factors = {
        "volume": step_score(
            snapshot.avg_volume,
            [(5_000_000, 35), (1_000_000, 25), (250_000, 15), (50_000, 8)],
            operator.gt,
        ),
        "marketCap": step_score(
            snapshot.market_cap,
            [(5e9, 25), (500e6, 18), (50e6, 10), (10e6, 5)],
            operator.gt,
        ),
        "news": min(max(news, 0) * NEWS_POINTS_PER_ARTICLE, VIRALITY_MAXIMUMS["news"]),
        "options": VIRALITY_MAXIMUMS["options"] if has_options else 0,
    }
    total = min(sum(factors.values()), 100)
    return RiskBreakdown.from_factors(factors, VIRALITY_MAXIMUMS, label=virality_tier(total))


def combine_vis(bankruptcy_score: int, virality_score: int) -> VisResult:
    """VIS = round(0.6 * bankruptcy + 0.4 * virality), halves rounding up."""
    vis = round_half_up((6 * bankruptcy_score + 4 * virality_score) / 10)
    if vis >= 75:
        classification = PRIME_ALERT
    elif vis >= 60:
        classification = WATCHLIST
    else:
        classification = STORE_ONLY
    return VisResult(
        vis=vis,
        classification=classification,
        should_post=classification != STORE_ONLY,
        bankruptcy_score=bankruptcy_score,
        virality_score=virality_score,
    )
