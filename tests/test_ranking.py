"""Tests for leaderboard ranking."""

import asyncio

import pytest

from dilution_radar.core.narrative import NarrativeError
from dilution_radar.core.ranking import attach_reasons, build_entries, rank_candidates
from dilution_radar.models import Candidate, Filing, RiskBreakdown, TickerSnapshot


def candidate(ticker: str, score: int, form: str = "S-3") -> Candidate:
    filing = Filing(
        ticker=ticker,
        company_name=f"{ticker} Corp",
        file_date="2025-01-08",
        form_type=form,
        days_since_filing=2,
    )
    return Candidate(
        filing=filing,
        snapshot=TickerSnapshot(ticker=ticker),
        scoring=RiskBreakdown(total=score, factors={}, maximums={}),
    )


def fallback(c: Candidate) -> str:
    return f"fallback {c.ticker}"


def metrics(c: Candidate) -> dict:
    return {"score": c.score}


def describe(c: Candidate) -> dict:
    return {"ticker": c.ticker, "score": c.score}


class TestRankCandidates:
    """Tests for filtering, ordering and truncation."""

    def test_floor_sort_and_truncate(self) -> None:
        """Test 20 candidates scored 5..100 with min 30 and max 10."""
        candidates = [candidate(f"T{i:02d}", i * 5) for i in range(1, 21)]
        result = rank_candidates(candidates, min_score=30, max_count=10)

        scores = [c.score for c in result.ranked]
        assert len(scores) == 10
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 100
        assert min(scores) >= 30

    def test_floor_is_inclusive(self) -> None:
        result = rank_candidates([candidate("A", 30), candidate("B", 29)], 30, 10)
        assert [c.ticker for c in result.ranked] == ["A"]

    def test_equal_scores_keep_input_order(self) -> None:
        candidates = [candidate("A", 50), candidate("B", 70), candidate("C", 50), candidate("D", 50)]
        result = rank_candidates(candidates, 0, 10)
        assert [c.ticker for c in result.ranked] == ["B", "A", "C", "D"]

    def test_suppressed_tickers_reported(self) -> None:
        candidates = [candidate("A", 80), candidate("B", 70), candidate("C", 10)]
        result = rank_candidates(candidates, 30, 10, is_suppressed=lambda t: t in {"A", "C"})
        assert [c.ticker for c in result.ranked] == ["B"]
        # C never reaches the cooldown gate
        assert result.suppressed == ["A"]

    def test_zero_max_count(self) -> None:
        assert rank_candidates([candidate("A", 90)], 0, 0).ranked == []

    def test_negative_max_count_raises(self) -> None:
        with pytest.raises(ValueError):
            rank_candidates([], 0, -1)

    def test_empty(self) -> None:
        result = rank_candidates([], 30, 10)
        assert result.ranked == []
        assert result.suppressed == []


class TestBuildEntries:
    def test_ranks_and_fallback(self) -> None:
        ranked = [candidate("A", 90), candidate("B", 80)]
        entries = build_entries(ranked, {"A": "generated line"}, fallback, metrics)

        assert [e.rank for e in entries] == [1, 2]
        assert entries[0].reason == "generated line"
        assert entries[1].reason == "fallback B"
        assert entries[1].to_dict()["companyName"] == "B Corp"
        assert entries[1].metrics == {"score": 80}


class StaticGenerator:
    def __init__(self, reply: dict[str, str] | None = None, error: Exception | None = None):
        self.reply = reply or {}
        self.error = error
        self.calls: list[list[dict]] = []

    async def generate(self, items: list[dict]) -> dict[str, str]:
        self.calls.append(items)
        if self.error is not None:
            raise self.error
        return self.reply


class TestAttachReasons:
    """Tests for one-batch reason generation with fallbacks."""

    def test_single_batch_call(self) -> None:
        generator = StaticGenerator({"A": "a line", "B": "b line"})
        ranked = [candidate("A", 90), candidate("B", 80)]
        entries = asyncio.run(attach_reasons(ranked, generator, fallback, metrics, describe))

        assert len(generator.calls) == 1
        assert [item["ticker"] for item in generator.calls[0]] == ["A", "B"]
        assert [e.reason for e in entries] == ["a line", "b line"]

    def test_generator_failure_uses_fallbacks(self) -> None:
        generator = StaticGenerator(error=NarrativeError("boom"))
        entries = asyncio.run(
            attach_reasons([candidate("A", 90)], generator, fallback, metrics, describe)
        )
        assert entries[0].reason == "fallback A"

    def test_no_generator(self) -> None:
        entries = asyncio.run(attach_reasons([candidate("A", 90)], None, fallback, metrics, describe))
        assert entries[0].reason == "fallback A"

    def test_empty_ranked_skips_generator(self) -> None:
        generator = StaticGenerator()
        assert asyncio.run(attach_reasons([], generator, fallback, metrics, describe)) == []
        assert generator.calls == []
