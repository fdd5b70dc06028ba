"""Risk scoring variants. Every scorer is a pure function returning a RiskBreakdown."""

from dilution_radar.scoring.bankruptcy import (
    BankruptcyAssessment,
    BankruptcyInputs,
    BankruptcyMetrics,
    score_bankruptcy_risk,
)
from dilution_radar.scoring.buckets import step_score
from dilution_radar.scoring.dilution import group_totals, score_dilution_severity
from dilution_radar.scoring.outcomes import (
    OutcomeEstimate,
    estimate_outcomes,
    format_outcome_summary,
)
from dilution_radar.scoring.shelf import score_shelf_risk
from dilution_radar.scoring.virality import VisResult, combine_vis, score_virality

__all__ = [
    "BankruptcyAssessment",
    "BankruptcyInputs",
    "BankruptcyMetrics",
    "score_bankruptcy_risk",
    "step_score",
    "group_totals",
    "score_dilution_severity",
    "OutcomeEstimate",
    "estimate_outcomes",
    "format_outcome_summary",
    "score_shelf_risk",
    "VisResult",
    "combine_vis",
    "score_virality",
]
