"""Outcome probabilities (dilution / restructuring / bankruptcy) from distress metrics."""

from dataclasses import dataclass

from dilution_radar.models import round_half_up
from dilution_radar.scoring.bankruptcy import BankruptcyMetrics

DILUTION = "DILUTION"
RESTRUCTURING = "RESTRUCTURING"
BANKRUPTCY = "BANKRUPTCY"
STABLE = "STABLE"


@dataclass(frozen=True)
class OutcomeEstimate:
    dilution: int
    restructure: int
    bankruptcy: int
    primary_outcome: str
    confidence: str
    raw_total: int = 0

    def to_dict(self) -> dict:
        return {
            "dilution": self.dilution,
            "restructure": self.restructure,
            "bankruptcy": self.bankruptcy,
            "primaryOutcome": self.primary_outcome,
            "confidence": self.confidence,
            "rawTotal": self.raw_total,
        }


def estimate_outcomes(metrics: BankruptcyMetrics) -> OutcomeEstimate:
    """
    Accumulate raw points per outcome from runway, debt, coverage and trend
    signals, then normalize to percentages of the raw total.

    The primary outcome is the largest share (ties go to dilution, then
    restructuring). Confidence grows with the raw total: HIGH >= 80,
    MEDIUM >= 50.
    """
    dilution = restructure = bankruptcy = 0
    runway = metrics.runway_months

    if runway < 1:
        bankruptcy += 35
        dilution += 20
    elif runway < 3:
        bankruptcy += 20
        dilution += 25
    elif runway < 6:
        bankruptcy += 10
        dilution += 20
    elif runway < 12:
        dilution += 10

    multiple = metrics.debt_to_cash_multiple
    if multiple > 50:
        restructure += 30
        bankruptcy += 15
    elif multiple > 20:
        restructure += 20
        bankruptcy += 10
    elif multiple > 10:
        restructure += 15
    elif multiple > 5:
        restructure += 10

    if metrics.cash > 0 and metrics.total_debt > 0:
        cash_debt = metrics.cash / metrics.total_debt
        if cash_debt < 0.02:
            bankruptcy += 25
        elif cash_debt < 0.05:
            bankruptcy += 15
        elif cash_debt < 0.10:
            restructure += 10

    coverage = metrics.interest_coverage
    if coverage < 0:
        restructure += 20
        bankruptcy += 10
    elif coverage < 1:
        restructure += 15
        bankruptcy += 5
    elif coverage < 2:
        restructure += 10

    change = metrics.revenue_change_pct
    if change is not None:
        if change < -50:
            dilution += 15
            restructure += 15
            bankruptcy += 15
        elif change < -30:
            dilution += 10
            restructure += 10
            bankruptcy += 10
        elif change < -10:
            dilution += 5
            restructure += 5

    if metrics.negative_income_count >= 4:
        dilution += 10
        restructure += 5
    elif metrics.negative_income_count >= 3:
        dilution += 5

    if metrics.ocf_negative_count >= 4:
        dilution += 10
        bankruptcy += 5

    if metrics.monthly_burn > 0 and runway < 4:
        dilution += 15

    total = dilution + restructure + bankruptcy
    if total == 0:
        return OutcomeEstimate(0, 0, 0, STABLE, "LOW")

    shares = {
        DILUTION: round_half_up(dilution / total * 100),
        RESTRUCTURING: round_half_up(restructure / total * 100),
        BANKRUPTCY: round_half_up(bankruptcy / total * 100),
    }
    primary = DILUTION
    for outcome in (RESTRUCTURING, BANKRUPTCY):
        if shares[outcome] > shares[primary]:
            primary = outcome

    if total >= 80:
        confidence = "HIGH"
    elif total >= 50:
        confidence = "MEDIUM"
    else:
        confidence = "LOW"

    return OutcomeEstimate(
        dilution=shares[DILUTION],
        restructure=shares[RESTRUCTURING],
        bankruptcy=shares[BANKRUPTCY],
        primary_outcome=primary,
        confidence=confidence,
        raw_total=total,
    )


def format_outcome_summary(outcome: OutcomeEstimate) -> str:
    if outcome.primary_outcome == BANKRUPTCY and outcome.bankruptcy >= 40:
        return (
            "High probability of insolvency proceedings. "
            "Math favors failure without immediate intervention."
        )
    if outcome.primary_outcome == DILUTION and outcome.dilution >= 40:
        return (
            "Base case: emergency dilution incoming. "
            "Expect ATM, offering, or PIPE to buy time."
        )
    if outcome.primary_outcome == RESTRUCTURING and outcome.restructure >= 40:
        return (
            "Debt restructuring likely. "
            "Watch for reverse split, debt-for-equity swap, or covenant breach."
        )
    if outcome.bankruptcy >= 30 and outcome.dilution >= 30:
        return "Dual risk: dilution attempt likely, but bankruptcy still on the table if it fails."
    return "Multiple distress signals present. Outcome depends on management's next move."
