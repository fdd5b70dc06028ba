"""Core batch logic: dedup, cooldown, phase analysis, ranking and reasons."""

from dilution_radar.core.cooldown import CooldownStore
from dilution_radar.core.dedup import FormPass, dedupe_hits, dedupe_passes, sorted_filings
from dilution_radar.core.narrative import (
    NarrativeError,
    NarrativeGenerator,
    OpenAINarrativeGenerator,
    bankruptcy_fallback_reason,
    dilution_fallback_reason,
    shelf_fallback_reason,
)
from dilution_radar.core.phase import (
    InsufficientDataError,
    InvalidPriceError,
    PhaseAnalysisError,
    analyze_window,
)
from dilution_radar.core.posting import Poster, PostError, PreviewPoster, WebhookPoster
from dilution_radar.core.ranking import RankResult, attach_reasons, rank_candidates

__all__ = [
    "CooldownStore",
    "FormPass",
    "dedupe_hits",
    "dedupe_passes",
    "sorted_filings",
    "NarrativeError",
    "NarrativeGenerator",
    "OpenAINarrativeGenerator",
    "bankruptcy_fallback_reason",
    "dilution_fallback_reason",
    "shelf_fallback_reason",
    "InsufficientDataError",
    "InvalidPriceError",
    "PhaseAnalysisError",
    "analyze_window",
    "Poster",
    "PostError",
    "PreviewPoster",
    "WebhookPoster",
    "RankResult",
    "attach_reasons",
    "rank_candidates",
]
