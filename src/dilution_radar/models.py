"""Record types shared by scanners, scorers and leaderboards."""

import math
from dataclasses import dataclass, field
from typing import Any

# Runway reported for companies that are not burning cash
RUNWAY_NOT_BURNING = 999.0
# Debt/cash ratio reported when debt exists but cash is zero
DEBT_RATIO_NO_CASH = 999.0


def round_half_up(value: float) -> int:
    """Round halves up (the builtin round() rounds half to even)."""
    return int(math.floor(value + 0.5))


def safe_float(value: Any) -> float | None:
    """Convert to float or return None for missing, NaN or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def first_number(record: dict[str, Any] | None, *keys: str) -> float | None:
    """First present numeric value among keys."""
    if not record:
        return None
    for key in keys:
        value = safe_float(record.get(key))
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class Filing:
    """The surviving filing for one ticker in a scan."""

    ticker: str
    company_name: str
    file_date: str
    form_type: str
    days_since_filing: int
    cik: str | None = None
    accession: str | None = None


@dataclass(frozen=True)
class Candle:
    """One daily OHLCV bar."""

    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def is_green(self) -> bool:
        return self.close > self.open


@dataclass(frozen=True)
class PhaseMetrics:
    """Peak/pullback/rollover description of a short price window."""

    peak_high: float
    peak_index: int
    peak_day: int
    trough_low: float
    trough_index: int
    start_price: float
    current_price: float
    peak_gain_pct: float
    current_gain_pct: float
    pullback_pct: float
    ramp_days: int
    is_rolling_over: bool
    is_same_day_spike_crash: bool
    window_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "peakHigh": self.peak_high,
            "peakDay": self.peak_day,
            "troughLow": self.trough_low,
            "startPrice": self.start_price,
            "currentPrice": self.current_price,
            "peakGainPct": round(self.peak_gain_pct, 2),
            "currentGainPct": round(self.current_gain_pct, 2),
            "pullbackPct": round(self.pullback_pct, 2),
            "rampDays": self.ramp_days,
            "isRollingOver": self.is_rolling_over,
            "isSameDaySpikeCrash": self.is_same_day_spike_crash,
        }


@dataclass(frozen=True)
class RiskBreakdown:
    """Bucketed sub-scores plus their clipped, rounded total."""

    total: int
    factors: dict[str, int]
    maximums: dict[str, int]
    label: str | None = None

    @classmethod
    def from_factors(
        cls,
        factors: dict[str, float],
        maximums: dict[str, int],
        cap: int = 100,
        label: str | None = None,
    ) -> "RiskBreakdown":
        """Sum sub-scores, clip to [0, cap] and round."""
        raw = sum(factors.values())
        total = round_half_up(min(max(raw, 0), cap))
        return cls(
            total=total,
            factors={k: round_half_up(v) for k, v in factors.items()},
            maximums=dict(maximums),
            label=label,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "total": self.total,
            "breakdown": {
                name: {"score": score, "max": self.maximums.get(name)}
                for name, score in self.factors.items()
            },
        }
        if self.label is not None:
            out["label"] = self.label
        return out


@dataclass(frozen=True)
class CooldownEntry:
    ticker: str
    last_alert_date: str


@dataclass
class TickerSnapshot:
    """
    Market and fundamentals snapshot for one ticker.

    Every field is optional. Derived metrics return None when an input is
    missing, and scorers treat None as the least-distressed bucket.
    """

    ticker: str
    company_name: str | None = None
    price: float | None = None
    market_cap: float | None = None
    volume: float | None = None
    avg_volume: float | None = None
    day_change_pct: float | None = None
    year_high: float | None = None
    year_low: float | None = None
    cash: float | None = None
    total_debt: float | None = None
    # Operating cash flow over `ocf_period_months` (12 for TTM, 3 for a quarter)
    operating_cash_flow: float | None = None
    ocf_period_months: int = 12
    shares_outstanding: float | None = None
    news_count: int | None = None
    has_options: bool | None = None

    @property
    def monthly_burn(self) -> float | None:
        """Monthly cash burn; 0 when operating cash flow is non-negative."""
        ocf = safe_float(self.operating_cash_flow)
        if ocf is None:
            return None
        if ocf >= 0:
            return 0.0
        return abs(ocf) / self.ocf_period_months

    @property
    def runway_months(self) -> float | None:
        burn = self.monthly_burn
        cash = safe_float(self.cash)
        if burn is None or cash is None:
            return None
        if burn == 0:
            return RUNWAY_NOT_BURNING
        return cash / burn

    @property
    def debt_cash_ratio(self) -> float | None:
        cash = safe_float(self.cash)
        debt = safe_float(self.total_debt)
        if cash is None or debt is None:
            return None
        if cash <= 0:
            return DEBT_RATIO_NO_CASH if debt > 0 else None
        return debt / cash

    @property
    def volume_ratio(self) -> float | None:
        volume = safe_float(self.volume)
        avg = safe_float(self.avg_volume)
        if volume is None or avg is None or avg <= 0:
            return None
        return volume / avg


@dataclass
class Candidate:
    """A filing joined with its enrichment, phase analysis and score."""

    filing: Filing
    snapshot: TickerSnapshot
    phase: PhaseMetrics | None = None
    scoring: RiskBreakdown | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def ticker(self) -> str:
        return self.filing.ticker

    @property
    def score(self) -> int:
        return self.scoring.total if self.scoring is not None else 0


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    ticker: str
    company_name: str
    score: int
    form_type: str
    reason: str
    metrics: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "ticker": self.ticker,
            "companyName": self.company_name,
            "score": self.score,
            "formType": self.form_type,
            "reason": self.reason,
            "metrics": self.metrics,
        }
