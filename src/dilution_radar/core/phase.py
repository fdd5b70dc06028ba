"""
Price phase analysis over a short window of daily candles.

All peak and ramp logic is index-positional, so the window must be ordered
oldest first. The analyzer fails loudly on windows it cannot measure rather
than returning percentages computed from a zero base.
"""

from collections.abc import Sequence

import numpy as np

from dilution_radar.models import Candle, PhaseMetrics

MIN_WINDOW = 2
ROLLOVER_PULLBACK_PCT = 5.0
SPIKE_INTRADAY_PCT = 50.0
SPIKE_BODY_FRACTION = 0.3

# Momentum buckets keyed on peak gain within the window
MOMENTUM_PUMPING_PCT = 100.0
MOMENTUM_RISING_PCT = 50.0
MOMENTUM_FLAT_FLOOR_PCT = -10.0


class PhaseAnalysisError(ValueError):
    """Base class for windows the analyzer refuses to measure."""


class InsufficientDataError(PhaseAnalysisError):
    """Raised when the window holds fewer than two candles."""


class InvalidPriceError(PhaseAnalysisError):
    """Raised when a base price used as a divisor is zero or negative."""


def analyze_window(candles: Sequence[Candle]) -> PhaseMetrics:
    """
    Compute peak, pullback, ramp and pattern flags for an oldest-first window.

    Raises:
        InsufficientDataError: fewer than two candles
        InvalidPriceError: the first open or the peak candle's open is <= 0
    """
    n = len(candles)
    if n < MIN_WINDOW:
        raise InsufficientDataError(f"Need at least {MIN_WINDOW} candles, got {n}")

    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)

    # argmax/argmin return the first occurrence on ties
    peak_index = int(np.argmax(highs))
    trough_index = int(np.argmin(lows))
    peak_high = float(highs[peak_index])

    start_price = candles[0].open
    current_price = candles[-1].close
    if start_price <= 0:
        raise InvalidPriceError(f"Window start open must be positive, got {start_price}")

    peak_gain_pct = (peak_high - start_price) / start_price * 100
    current_gain_pct = (current_price - start_price) / start_price * 100
    pullback_pct = peak_gain_pct - current_gain_pct
    peak_day = peak_index + 1

    peak_candle = candles[peak_index]
    if peak_candle.open <= 0:
        raise InvalidPriceError(f"Peak candle open must be positive, got {peak_candle.open}")
    peak_intraday_pct = (peak_candle.high - peak_candle.open) / peak_candle.open * 100
    peak_body_pct = (peak_candle.close - peak_candle.open) / peak_candle.open * 100

    return PhaseMetrics(
        peak_high=peak_high,
        peak_index=peak_index,
        peak_day=peak_day,
        trough_low=float(lows[trough_index]),
        trough_index=trough_index,
        start_price=start_price,
        current_price=current_price,
        peak_gain_pct=peak_gain_pct,
        current_gain_pct=current_gain_pct,
        pullback_pct=pullback_pct,
        ramp_days=count_ramp_days(candles, peak_index),
        is_rolling_over=pullback_pct > ROLLOVER_PULLBACK_PCT and peak_day < n,
        is_same_day_spike_crash=(
            peak_intraday_pct > SPIKE_INTRADAY_PCT
            and peak_body_pct < peak_intraday_pct * SPIKE_BODY_FRACTION
        ),
        window_size=n,
    )


def count_ramp_days(candles: Sequence[Candle], peak_index: int) -> int:
    """Consecutive green candles immediately before the peak."""
    ramp = 0
    for i in range(peak_index - 1, -1, -1):
        if not candles[i].is_green:
            break
        ramp += 1
    return ramp


def classify_momentum(peak_gain_pct: float) -> str:
    """Bucket a window by how far it ran at its peak."""
    if peak_gain_pct >= MOMENTUM_PUMPING_PCT:
        return "pumping"
    if peak_gain_pct >= MOMENTUM_RISING_PCT:
        return "rising"
    if peak_gain_pct >= MOMENTUM_FLAT_FLOOR_PCT:
        return "flat"
    return "falling"


def phase_status(metrics: PhaseMetrics) -> str:
    """Display status: rollover, pulling, at_peak or neutral."""
    if metrics.is_rolling_over:
        return "rollover"
    if metrics.pullback_pct > 10:
        return "pulling"
    if metrics.current_gain_pct > metrics.peak_gain_pct * 0.95:
        return "at_peak"
    return "neutral"


def is_early_rollover(metrics: PhaseMetrics) -> bool:
    """
    Peaked late in the window after a real run and has only begun to fade.

    Peak gain >= 50%, peak on day 5 or later, pullback between 5 and 30
    points, and still >= 30% above the window start.
    """
    return (
        metrics.peak_gain_pct >= 50
        and metrics.peak_day >= 5
        and 5 <= metrics.pullback_pct <= 30
        and metrics.current_gain_pct >= 30
    )


def is_already_crashed(metrics: PhaseMetrics) -> bool:
    return metrics.pullback_pct > 50
