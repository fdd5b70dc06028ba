"""Tests for price phase analysis."""

import pytest
from conftest import make_candles

from dilution_radar.core.phase import (
    InsufficientDataError,
    InvalidPriceError,
    PhaseAnalysisError,
    analyze_window,
    classify_momentum,
    count_ramp_days,
    is_already_crashed,
    is_early_rollover,
    phase_status,
)
from dilution_radar.models import Candle


def candle(day: int, o: float, h: float, low: float, c: float) -> Candle:
    return Candle(date=f"2025-01-{day:02d}", open=o, high=h, low=low, close=c)


class TestAnalyzeWindow:
    """Tests for peak, pullback and pattern flags."""

    def test_spike_then_crash(self) -> None:
        """Test a 60% intraday spike that closes near the open."""
        window = [candle(1, 1.00, 1.05, 0.98, 1.02), candle(2, 1.00, 1.60, 0.99, 1.05)]
        m = analyze_window(window)

        assert m.peak_high == 1.60
        assert m.peak_day == 2
        assert m.peak_gain_pct == pytest.approx(60.0)
        assert m.current_gain_pct == pytest.approx(5.0)
        assert m.pullback_pct == pytest.approx(55.0)
        assert m.is_same_day_spike_crash is True
        # Peak on the last candle is not a rollover
        assert m.is_rolling_over is False

    def test_rollover_peak_before_last_day(self) -> None:
        """Test a peak on day 5 of 7 with a >5 point pullback is a rollover."""
        closes = [1.0, 1.2, 1.4, 1.6, 2.0, 1.8, 1.7]
        m = analyze_window(make_candles(closes, opens=[1.0] + closes[:-1]))
        assert m.peak_index == 4
        assert m.peak_day == 5
        assert m.is_rolling_over is True

    def test_peak_on_last_day_not_rollover(self) -> None:
        closes = [1.0, 1.1, 1.2, 1.3, 1.4, 1.5, 2.0]
        m = analyze_window(make_candles(closes, opens=[1.0] + closes[:-1]))
        assert m.peak_index == 6
        assert m.is_rolling_over is False

    def test_first_occurrence_wins_ties(self) -> None:
        window = [candle(1, 1, 2, 1, 1.5), candle(2, 1.5, 2, 1, 1.2), candle(3, 1.2, 1.3, 1, 1.1)]
        assert analyze_window(window).peak_index == 0

    def test_trough(self) -> None:
        window = [candle(1, 1, 1.1, 0.9, 1), candle(2, 1, 1.1, 0.5, 0.6), candle(3, 0.6, 0.7, 0.55, 0.65)]
        m = analyze_window(window)
        assert m.trough_low == 0.5
        assert m.trough_index == 1

    def test_single_candle_raises(self) -> None:
        with pytest.raises(InsufficientDataError):
            analyze_window([candle(1, 1, 1, 1, 1)])

    def test_empty_raises(self) -> None:
        with pytest.raises(PhaseAnalysisError):
            analyze_window([])

    def test_zero_start_open_raises(self) -> None:
        with pytest.raises(InvalidPriceError):
            analyze_window([candle(1, 0, 1, 0, 1), candle(2, 1, 1.2, 1, 1.1)])

    def test_errors_are_value_errors(self) -> None:
        assert issubclass(InsufficientDataError, ValueError)
        assert issubclass(InvalidPriceError, ValueError)

    def test_to_dict_rounds(self) -> None:
        m = analyze_window([candle(1, 3, 3, 3, 3), candle(2, 3, 4, 3, 3.5)])
        assert m.to_dict()["peakGainPct"] == 33.33


class TestRampDays:
    def test_green_run_before_peak(self) -> None:
        window = [
            candle(1, 1.0, 1.0, 0.9, 0.95),  # red
            candle(2, 0.95, 1.1, 0.95, 1.1),  # green
            candle(3, 1.1, 1.3, 1.1, 1.3),  # green
            candle(4, 1.3, 2.0, 1.3, 1.8),  # peak
        ]
        assert count_ramp_days(window, 3) == 2

    def test_peak_first_has_no_ramp(self) -> None:
        assert count_ramp_days(make_candles([1.0, 0.9]), 0) == 0


class TestMomentumBuckets:
    """Tests for peak-gain buckets."""

    @pytest.mark.parametrize(
        "gain, bucket",
        [(100, "pumping"), (99.9, "rising"), (50, "rising"), (49.9, "flat"), (-10, "flat"), (-10.1, "falling")],
    )
    def test_boundaries(self, gain: float, bucket: str) -> None:
        assert classify_momentum(gain) == bucket


class TestRolloverFlags:
    def test_early_rollover(self) -> None:
        """Test a late peak with a modest fade that is still well above start."""
        closes = [1.0, 1.2, 1.4, 1.6, 1.9, 2.0, 1.8]
        m = analyze_window(make_candles(closes, opens=[1.0] + closes[:-1]))
        assert m.peak_day == 6
        assert is_early_rollover(m) is True
        assert phase_status(m) == "rollover"

    def test_already_crashed(self) -> None:
        closes = [1.0, 2.5, 1.2]
        m = analyze_window(make_candles(closes, opens=[1.0, 1.0, 2.5]))
        assert m.pullback_pct > 50
        assert is_already_crashed(m) is True
        assert is_early_rollover(m) is False

    def test_at_peak_status(self) -> None:
        closes = [1.0, 1.1, 1.2]
        m = analyze_window(make_candles(closes, opens=[1.0, 1.0, 1.1]))
        assert phase_status(m) == "at_peak"
