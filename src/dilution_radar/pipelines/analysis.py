"""Single-ticker insolvency analysis shared by the watchlist and the scanners."""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any

from dilution_radar.data.yfinance_client import QuarterlyStatements
from dilution_radar.models import RiskBreakdown, TickerSnapshot
from dilution_radar.pipelines.common import optional_fetch
from dilution_radar.scoring.bankruptcy import (
    BankruptcyAssessment,
    BankruptcyInputs,
    altman_z_score,
    score_bankruptcy_risk,
)
from dilution_radar.scoring.outcomes import (
    OutcomeEstimate,
    estimate_outcomes,
    format_outcome_summary,
)
from dilution_radar.scoring.virality import VisResult, combine_vis, score_virality
from dilution_radar.utils.formatting import format_currency, format_months

logger = logging.getLogger(__name__)


@dataclass
class TickerAnalysis:
    ticker: str
    snapshot: TickerSnapshot
    assessment: BankruptcyAssessment
    virality: RiskBreakdown
    vis: VisResult
    outcome: OutcomeEstimate | None = None

    def to_dict(self) -> dict[str, Any]:
        metrics = self.assessment.metrics
        return {
            "ticker": self.ticker,
            "bankruptcy": {
                **self.assessment.breakdown.to_dict(),
                "classification": self.assessment.classification,
                "metrics": metrics.to_dict() if metrics is not None else None,
            },
            "virality": self.virality.to_dict(),
            "vis": self.vis.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome is not None else None,
        }


async def analyze_ticker(
    market: Any,
    ticker: str,
    snapshot: TickerSnapshot | None = None,
) -> TickerAnalysis:
    """
    Fetch statements, insider trades, news and options for one ticker and
    score bankruptcy risk, virality and VIS.

    Secondary fetches that fail degrade to empty data; a failed snapshot
    fetch propagates.
    """
    if snapshot is None:
        snapshot = await market.fetch_snapshot(ticker)

    statements, insiders, news_count, has_options = await asyncio.gather(
        optional_fetch(market.fetch_statements(ticker), QuarterlyStatements(), ticker),
        optional_fetch(market.fetch_insider_trades(ticker), [], ticker),
        optional_fetch(market.fetch_news_count(ticker), 0, ticker),
        optional_fetch(market.fetch_has_options(ticker), None, ticker),
    )
    snapshot = replace(snapshot, news_count=news_count, has_options=has_options)

    inputs = BankruptcyInputs(
        ticker=ticker,
        balance_sheets=statements.balance_sheets,
        income_statements=statements.income_statements,
        cash_flows=statements.cash_flows,
        altman_z=altman_z_score(
            statements.balance_sheets, statements.income_statements, snapshot.market_cap
        ),
        insider_trades=insiders,
    )
    assessment = score_bankruptcy_risk(inputs)
    virality = score_virality(snapshot)
    vis = combine_vis(assessment.score, virality.total)
    outcome = estimate_outcomes(assessment.metrics) if assessment.metrics is not None else None

    logger.info(
        f"{ticker}: bankruptcy={assessment.score} ({assessment.classification}) "
        f"virality={virality.total} VIS={vis.vis}"
    )
    return TickerAnalysis(
        ticker=ticker,
        snapshot=snapshot,
        assessment=assessment,
        virality=virality,
        vis=vis,
        outcome=outcome,
    )


def render_analysis(analysis: TickerAnalysis) -> str:
    """Plain-text report of one analysis for terminal output."""
    metrics = analysis.assessment.metrics
    lines = [
        f"${analysis.ticker}  bankruptcy {analysis.assessment.score}/100 "
        f"[{analysis.assessment.classification}]  VIS {analysis.vis.vis} [{analysis.vis.classification}]",
    ]
    if metrics is not None:
        lines.append(
            f"  cash {format_currency(metrics.cash)}  burn {format_currency(metrics.monthly_burn)}/mo  "
            f"runway {format_months(metrics.runway_months)}"
        )
        lines.append(
            f"  debt {format_currency(metrics.total_debt)} ({metrics.debt_to_cash_multiple:.1f}x cash)  "
            f"interest coverage {metrics.interest_coverage:.1f}x"
        )
    for name, score in analysis.assessment.breakdown.factors.items():
        lines.append(f"  {name:<14} {score:>3}/{analysis.assessment.breakdown.maximums.get(name)}")
    if analysis.outcome is not None:
        lines.append(f"  {format_outcome_summary(analysis.outcome)}")
    return "\n".join(lines)
