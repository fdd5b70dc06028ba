"""Utility modules."""

from dilution_radar.utils.formatting import format_currency, format_months, format_pct, format_ratio
from dilution_radar.utils.files import write_json_atomic
from dilution_radar.utils.ohlcv import (
    candles_since,
    standardize_ohlcv,
    window_from_newest_first,
)
from dilution_radar.utils.provenance import build_meta, build_provenance
from dilution_radar.utils.sanitize import sanitize_reason, sanitize_text
from dilution_radar.utils.validators import SearchParams, validate_lookback_days

__all__ = [
    "format_currency",
    "format_months",
    "format_pct",
    "format_ratio",
    "write_json_atomic",
    "candles_since",
    "standardize_ohlcv",
    "window_from_newest_first",
    "build_meta",
    "build_provenance",
    "sanitize_reason",
    "sanitize_text",
    "SearchParams",
    "validate_lookback_days",
]
