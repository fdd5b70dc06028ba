"""Shelf Dilution Risk (SDR): how close a fresh shelf registration is to being used."""

import operator

from dilution_radar.models import RiskBreakdown, TickerSnapshot
from dilution_radar.scoring.buckets import step_score

SDR_MAXIMUMS = {
    "runwayRisk": 25,
    "debtRisk": 20,
    "recencyRisk": 20,
    "mcapRisk": 15,
    "formRisk": 10,
    "burnRisk": 10,
}


def score_runway(runway_months: float | None) -> int:
    """Shorter runway means more pressure to draw on the shelf."""
    return step_score(
        runway_months,
        [(3, 25), (6, 20), (12, 15), (24, 10)],
        operator.lt,
        otherwise=5,
    )


def score_debt(debt_cash_ratio: float | None) -> int:
    return step_score(
        debt_cash_ratio,
        [(10, 20), (5, 15), (2, 10), (1, 5)],
        operator.gt,
        otherwise=0,
    )


def score_recency(days_since_filing: int | None) -> int:
    return step_score(
        days_since_filing,
        [(2, 20), (5, 15), (7, 10)],
        operator.le,
        otherwise=5,
    )


def score_market_cap(market_cap: float | None) -> int:
    """Smaller issuers feel a raise more."""
    return step_score(
        market_cap,
        [(50e6, 15), (200e6, 12), (500e6, 8), (1e9, 5)],
        operator.lt,
        otherwise=2,
    )


def score_form(form_type: str | None) -> int:
    """Amendments mean the registration is moving forward."""
    form = (form_type or "").upper()
    if "/A" in form:
        return 10
    if form in ("S-3", "S-1"):
        return 8
    if form == "424B5":
        return 7
    return 5


def score_burn(monthly_burn: float | None) -> int:
    """Zero when not burning (or unknown)."""
    if not monthly_burn or monthly_burn <= 0:
        return 0
    return step_score(
        monthly_burn,
        [(10e6, 10), (5e6, 8), (1e6, 5)],
        operator.gt,
        otherwise=3,
    )


def score_shelf_risk(
    snapshot: TickerSnapshot,
    form_type: str | None,
    days_since_filing: int | None,
) -> RiskBreakdown:
    """
    Score a shelf filer from 0 to 100.

    Args:
        snapshot: Fundamentals for the filer (missing fields score as healthy)
        form_type: Filing form (S-3, S-3/A, S-1, S-8, 424B5, ...)
        days_since_filing: Days since the filing date

    Returns:
        RiskBreakdown with one factor per SDR_MAXIMUMS key
    """
    factors = {
        "runwayRisk": score_runway(snapshot.runway_months),
        "debtRisk": score_debt(snapshot.debt_cash_ratio),
        "recencyRisk": score_recency(days_since_filing),
        "mcapRisk": score_market_cap(snapshot.market_cap),
        "formRisk": score_form(form_type),
        "burnRisk": score_burn(snapshot.monthly_burn),
    }
    return RiskBreakdown.from_factors(factors, SDR_MAXIMUMS)
