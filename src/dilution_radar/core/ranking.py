"""Leaderboard ranking: score floor, cooldown gate, stable sort, truncation, reasons."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from dilution_radar.core.narrative import NarrativeGenerator, request_reasons
from dilution_radar.models import Candidate, LeaderboardEntry

logger = logging.getLogger(__name__)


@dataclass
class RankResult:
    """Ranked candidates (rank = position + 1) plus tickers held back by cooldown."""

    ranked: list[Candidate] = field(default_factory=list)
    suppressed: list[str] = field(default_factory=list)


def rank_candidates(
    candidates: Iterable[Candidate],
    min_score: int,
    max_count: int,
    is_suppressed: Callable[[str], bool] | None = None,
) -> RankResult:
    """
    Filter, sort and truncate scored candidates.

    Candidates below `min_score` are dropped first; of the rest, tickers for
    which `is_suppressed` returns True are reported in `suppressed`. The sort
    is stable, so equal scores keep their input order.

    Args:
        candidates: Scored candidates in discovery order
        min_score: Inclusive score floor
        max_count: Maximum entries to keep
        is_suppressed: Cooldown gate (None disables it)

    Returns:
        RankResult with at most max_count candidates, scores non-increasing
    """
    if max_count < 0:
        raise ValueError(f"max_count must be >= 0, got {max_count}")

    eligible: list[Candidate] = []
    suppressed: list[str] = []
    for candidate in candidates:
        if candidate.score < min_score:
            continue
        if is_suppressed is not None and is_suppressed(candidate.ticker):
            suppressed.append(candidate.ticker)
            continue
        eligible.append(candidate)

    eligible.sort(key=lambda c: c.score, reverse=True)
    if suppressed:
        preview = ", ".join(suppressed[:5]) + ("..." if len(suppressed) > 5 else "")
        logger.info(f"Skipped {len(suppressed)} on cooldown: {preview}")
    return RankResult(ranked=eligible[:max_count], suppressed=suppressed)


def build_entries(
    ranked: list[Candidate],
    reasons: dict[str, str],
    fallback: Callable[[Candidate], str],
    metrics: Callable[[Candidate], dict[str, Any]],
) -> list[LeaderboardEntry]:
    """Assign ranks 1..n and a reason per entry (generated, else fallback)."""
    entries = []
    for rank, candidate in enumerate(ranked, start=1):
        reason = reasons.get(candidate.ticker) or fallback(candidate)
        entries.append(
            LeaderboardEntry(
                rank=rank,
                ticker=candidate.ticker,
                company_name=candidate.filing.company_name,
                score=candidate.score,
                form_type=candidate.filing.form_type,
                reason=reason,
                metrics=metrics(candidate),
            )
        )
    return entries


async def attach_reasons(
    ranked: list[Candidate],
    generator: NarrativeGenerator | None,
    fallback: Callable[[Candidate], str],
    metrics: Callable[[Candidate], dict[str, Any]],
    describe: Callable[[Candidate], dict[str, Any]],
) -> list[LeaderboardEntry]:
    """
    Ask the narrative generator for all ranked tickers in one call and build
    leaderboard entries; any ticker without a usable generated line gets the
    deterministic fallback.
    """
    reasons: dict[str, str] = {}
    if ranked:
        reasons = await request_reasons(generator, [describe(c) for c in ranked])
    missing = [c.ticker for c in ranked if c.ticker not in reasons]
    if generator is not None and missing:
        logger.info(f"Using fallback reasons for {len(missing)} tickers: {', '.join(missing)}")
    return build_entries(ranked, reasons, fallback, metrics)
