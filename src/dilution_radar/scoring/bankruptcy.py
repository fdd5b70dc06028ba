"""
Bankruptcy / insolvency risk score.

Inputs are quarterly statements as lists of records, newest quarter first,
keyed with the camelCase field names the market data client emits
(cashAndCashEquivalents, totalDebt, operatingCashFlow, ebitda, revenue, ...).

Component maximums: runway 25, debt 15, interest coverage 15, OCF trend 15,
revenue/profit 10, Altman Z 10, insider selling 5.
"""

import operator
from dataclasses import dataclass, field
from typing import Any

from dilution_radar.models import RiskBreakdown, first_number, safe_float
from dilution_radar.scoring.buckets import step_score

BANKRUPTCY_MAXIMUMS = {
    "runway": 25,
    "debt": 15,
    "interest": 15,
    "ocf": 15,
    "revenueProfit": 10,
    "altman": 10,
    "insider": 5,
}

INSOLVENCY_ALERT = "INSOLVENCY_ALERT"
DISTRESS_WATCHLIST = "DISTRESS_WATCHLIST"
HEALTHY_IGNORE = "HEALTHY_IGNORE"
INSUFFICIENT_DATA = "INSUFFICIENT_DATA"

# Runway reported (and capped at) when the company is not burning cash
RUNWAY_CAP_MONTHS = 24.0
# Coverage reported when there is no interest expense
COVERAGE_NO_INTEREST = 10.0
TREND_QUARTERS = 4

_BUY_WORDS = ("buy", "purchase")
_SELL_WORDS = ("sell", "sale")


@dataclass
class BankruptcyInputs:
    ticker: str
    balance_sheets: list[dict[str, Any]] = field(default_factory=list)
    income_statements: list[dict[str, Any]] = field(default_factory=list)
    cash_flows: list[dict[str, Any]] = field(default_factory=list)
    altman_z: float | None = None
    insider_trades: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_statements(self) -> bool:
        return bool(self.balance_sheets and self.income_statements and self.cash_flows)


@dataclass(frozen=True)
class BankruptcyMetrics:
    cash: float
    monthly_burn: float
    runway_months: float
    total_debt: float
    debt_to_cash_multiple: float
    cash_debt_ratio: float
    interest_coverage: float
    ocf_values: tuple[float, ...]
    ocf_negative_count: int
    ocf_worsening: bool
    revenue_change_pct: float | None
    negative_income_count: int
    altman_z: float | None
    insider_buy_value: float
    insider_sell_value: float
    cash_reported: bool = True

    @property
    def net_insider_flow(self) -> float:
        return self.insider_buy_value - self.insider_sell_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "cash": self.cash,
            "monthlyBurn": self.monthly_burn,
            "runwayMonths": round(self.runway_months, 2),
            "totalDebt": self.total_debt,
            "debtToCashMultiple": round(self.debt_to_cash_multiple, 2),
            "cashDebtRatio": round(self.cash_debt_ratio, 4),
            "interestCoverage": round(self.interest_coverage, 2),
            "ocfNegativeCount": self.ocf_negative_count,
            "ocfWorsening": self.ocf_worsening,
            "revenueChangePct": (
                round(self.revenue_change_pct, 2) if self.revenue_change_pct is not None else None
            ),
            "negativeIncomeCount": self.negative_income_count,
            "altmanZScore": self.altman_z,
            "netInsiderFlow": self.net_insider_flow,
            "cashReported": self.cash_reported,
        }


@dataclass(frozen=True)
class BankruptcyAssessment:
    ticker: str
    breakdown: RiskBreakdown
    metrics: BankruptcyMetrics | None

    @property
    def score(self) -> int:
        return self.breakdown.total

    @property
    def classification(self) -> str:
        return self.breakdown.label or INSUFFICIENT_DATA


def _cash(balance: dict[str, Any]) -> float | None:
    return first_number(balance, "cashAndCashEquivalents", "cashAndShortTermInvestments")


def _ocf(cash_flow: dict[str, Any]) -> float:
    return first_number(cash_flow, "operatingCashFlow", "netCashProvidedByOperatingActivities") or 0.0


def calculate_runway(balance: dict[str, Any], cash_flow: dict[str, Any]) -> tuple[float, float, float]:
    """
    (cash, monthly burn, runway months) from the latest quarter.

    Unreported cash reads as 0 and leaves runway at the cap.
    """
    cash = _cash(balance)
    ocf = _ocf(cash_flow)
    monthly_burn = abs(ocf) / 3 if ocf < 0 else 0.0
    if cash is None:
        return 0.0, monthly_burn, RUNWAY_CAP_MONTHS
    runway = cash / monthly_burn if monthly_burn > 0 else RUNWAY_CAP_MONTHS
    return cash, monthly_burn, min(runway, RUNWAY_CAP_MONTHS)


def calculate_debt(balance: dict[str, Any]) -> tuple[float, float, float]:
    """
    (total debt, debt/cash multiple, cash/debt ratio), dividing by at least 1.

    Both ratios are 0 when cash is unreported.
    """
    cash = _cash(balance)
    total_debt = first_number(balance, "totalDebt")
    if total_debt is None:
        total_debt = (first_number(balance, "shortTermDebt") or 0.0) + (
            first_number(balance, "longTermDebt") or 0.0
        )
    if cash is None:
        return total_debt, 0.0, 0.0
    return total_debt, total_debt / max(1.0, cash), cash / max(1.0, total_debt)


def calculate_interest_coverage(income: dict[str, Any]) -> float:
    ebit = first_number(income, "ebitda", "operatingIncome") or 0.0
    interest = abs(first_number(income, "interestExpense") or 0.0)
    if interest <= 0:
        return COVERAGE_NO_INTEREST
    return ebit / interest


def calculate_ocf_trend(cash_flows: list[dict[str, Any]]) -> tuple[tuple[float, ...], int, bool]:
    """(values, negative quarters, worsening) over the latest four quarters."""
    if len(cash_flows) < 2:
        return (), 0, False
    values = tuple(_ocf(cf) for cf in cash_flows[:TREND_QUARTERS])
    negatives = sum(1 for v in values if v < 0)
    return values, negatives, values[0] < values[1]


def calculate_revenue_trend(income: list[dict[str, Any]]) -> tuple[float | None, int]:
    """
    Revenue change of the latest quarter against the oldest of the last four,
    and the count of loss-making quarters among them.

    Returns (None, 0) with fewer than two quarters.
    """
    if len(income) < 2:
        return None, 0
    latest = first_number(income[0], "revenue") or 0.0
    oldest = first_number(income[min(3, len(income) - 1)], "revenue")
    change = (latest - oldest) / abs(oldest) * 100 if oldest else 0.0
    negatives = sum(
        1 for q in income[:TREND_QUARTERS] if (first_number(q, "netIncome") or 0.0) < 0
    )
    return change, negatives


def calculate_insider_flow(trades: list[dict[str, Any]]) -> tuple[float, float]:
    """(buy value, sell value) summed over insider transactions."""
    buys = sells = 0.0
    for trade in trades or []:
        value = first_number(trade, "value")
        if value is None:
            shares = first_number(trade, "shares", "securitiesTransacted") or 0.0
            price = first_number(trade, "price") or 0.0
            value = shares * price
        value = abs(value)
        kind = str(trade.get("transactionType") or "").lower()
        if any(word in kind for word in _BUY_WORDS):
            buys += value
        elif any(word in kind for word in _SELL_WORDS):
            sells += value
    return buys, sells


def altman_z_score(
    balance_sheets: list[dict[str, Any]],
    income_statements: list[dict[str, Any]],
    market_cap: float | None,
) -> float | None:
    """
    Altman Z = 1.2 WC/TA + 1.4 RE/TA + 3.3 EBIT/TA + 0.6 MVE/TL + 1.0 Sales/TA.

    Balance items come from the latest quarter; EBIT and sales are summed
    over up to four quarters. None when total assets, total liabilities or
    market cap is unavailable.
    """
    if not balance_sheets or not income_statements:
        return None
    balance = balance_sheets[0]
    assets = first_number(balance, "totalAssets")
    liabilities = first_number(balance, "totalLiabilities")
    market_cap = safe_float(market_cap)
    if not assets or not liabilities or market_cap is None:
        return None

    working_capital = first_number(balance, "workingCapital") or 0.0
    retained = first_number(balance, "retainedEarnings") or 0.0
    quarters = income_statements[:TREND_QUARTERS]
    ebit = sum(first_number(q, "ebit", "operatingIncome") or 0.0 for q in quarters)
    sales = sum(first_number(q, "revenue") or 0.0 for q in quarters)
    return (
        1.2 * working_capital / assets
        + 1.4 * retained / assets
        + 3.3 * ebit / assets
        + 0.6 * market_cap / liabilities
        + 1.0 * sales / assets
    )


def compute_metrics(inputs: BankruptcyInputs) -> BankruptcyMetrics:
    balance = inputs.balance_sheets[0]
    cash, monthly_burn, runway = calculate_runway(balance, inputs.cash_flows[0])
    total_debt, multiple, cash_debt = calculate_debt(balance)
    ocf_values, ocf_negatives, ocf_worsening = calculate_ocf_trend(inputs.cash_flows)
    revenue_change, negative_income = calculate_revenue_trend(inputs.income_statements)
    buys, sells = calculate_insider_flow(inputs.insider_trades)
    return BankruptcyMetrics(
        cash=cash,
        monthly_burn=monthly_burn,
        runway_months=runway,
        total_debt=total_debt,
        debt_to_cash_multiple=multiple,
        cash_debt_ratio=cash_debt,
        interest_coverage=calculate_interest_coverage(inputs.income_statements[0]),
        ocf_values=ocf_values,
        ocf_negative_count=ocf_negatives,
        ocf_worsening=ocf_worsening,
        revenue_change_pct=revenue_change,
        negative_income_count=negative_income,
        altman_z=safe_float(inputs.altman_z),
        insider_buy_value=buys,
        insider_sell_value=sells,
        cash_reported=_cash(balance) is not None,
    )


def score_debt(metrics: BankruptcyMetrics) -> int:
    """No debt, or no reported cash to weigh it against, scores nothing here."""
    if metrics.total_debt <= 0 or not metrics.cash_reported:
        return 0
    multiple, cash_debt = metrics.debt_to_cash_multiple, metrics.cash_debt_ratio
    if multiple >= 5 or cash_debt <= 0.2:
        return 15
    if multiple >= 3 or cash_debt <= 0.33:
        return 10
    if multiple >= 2 or cash_debt <= 0.5:
        return 5
    return 0


def score_ocf_trend(metrics: BankruptcyMetrics) -> int:
    if metrics.ocf_negative_count == 4 and metrics.ocf_worsening:
        return 15
    if metrics.ocf_negative_count >= 3:
        return 10
    if metrics.ocf_negative_count == 2:
        return 5
    return 0


def score_revenue_profit(metrics: BankruptcyMetrics) -> int:
    change, negatives = metrics.revenue_change_pct, metrics.negative_income_count
    if change is None:
        return 0
    if change < -20 and negatives >= 3:
        return 10
    if change <= 0 and negatives >= 2:
        return 7
    if negatives >= 2:
        return 5
    return 0


def score_insiders(metrics: BankruptcyMetrics) -> int:
    buys, sells = metrics.insider_buy_value, metrics.insider_sell_value
    if sells > buys * 3 and metrics.net_insider_flow < -1_000_000:
        return 5
    if sells > buys * 2:
        return 3
    return 0


def classify(score: int) -> str:
    if score >= 70:
        return INSOLVENCY_ALERT
    if score >= 50:
        return DISTRESS_WATCHLIST
    return HEALTHY_IGNORE


def score_bankruptcy_risk(inputs: BankruptcyInputs) -> BankruptcyAssessment:
    """
    Score insolvency risk from quarterly statements.

    Any empty statement list yields INSUFFICIENT_DATA with score 0 and no
    metrics.
    """
    if not inputs.has_statements:
        empty = RiskBreakdown.from_factors(
            {name: 0 for name in BANKRUPTCY_MAXIMUMS}, BANKRUPTCY_MAXIMUMS, label=INSUFFICIENT_DATA
        )
        return BankruptcyAssessment(ticker=inputs.ticker, breakdown=empty, metrics=None)

    metrics = compute_metrics(inputs)
    factors = {
        "runway": step_score(
            metrics.runway_months, [(2, 25), (4, 20), (6, 15), (12, 5)], operator.le
        ),
        "debt": score_debt(metrics),
        "interest": step_score(
            metrics.interest_coverage, [(0, 15), (1, 12), (2, 8), (3, 4)], operator.lt
        ),
        "ocf": score_ocf_trend(metrics),
        "revenueProfit": score_revenue_profit(metrics),
        "altman": step_score(metrics.altman_z, [(1.2, 10), (1.8, 7), (3.0, 3)], operator.lt),
        "insider": score_insiders(metrics),
    }
    total = sum(factors.values())
    breakdown = RiskBreakdown.from_factors(
        factors, BANKRUPTCY_MAXIMUMS, label=classify(min(total, 100))
    )
    return BankruptcyAssessment(ticker=inputs.ticker, breakdown=breakdown, metrics=metrics)
