"""OHLCV normalization: provider frames and rows to oldest-first Candle windows."""

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from dilution_radar.models import Candle, safe_float

CANONICAL_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
# Extra rows requested beyond the window to cover weekends and holidays
WINDOW_PADDING = 5


def standardize_ohlcv(df: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize a yfinance history frame to a consistent schema.

    Output columns (always, in this order): date, open, high, low, close, volume.
    Rows are sorted oldest first and rows with a missing OHLC value are dropped.
    """
    df = df.copy()

    # yf.download returns a column MultiIndex (field, ticker)
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)

    if "Adj Close" in df.columns:
        df = df.drop(columns=["Adj Close"])

    df.columns = [str(c).lower() for c in df.columns]
    df = df.reset_index()

    date_cols = [c for c in df.columns if str(c).lower() in ("date", "datetime", "index")]
    if date_cols:
        df = df.rename(columns={date_cols[0]: "date"})

    if "date" in df.columns and pd.api.types.is_datetime64_any_dtype(df["date"]):
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")

    for col in CANONICAL_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    df = df[CANONICAL_COLUMNS]
    df = df.dropna(subset=["open", "high", "low", "close"])
    return df.sort_values("date", kind="stable").reset_index(drop=True)



def row_to_candle(row: Mapping[str, Any]) -> Candle | None:
    """Build a Candle from a provider row; None if any price is missing."""
    prices = [safe_float(row.get(k)) for k in ("open", "high", "low", "close")]
    if any(p is None for p in prices):
        return None
    open_, high, low, close = prices
    return Candle(
        date=str(row.get("date", ""))[:10],
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=safe_float(row.get("volume")) or 0.0,
    )


def window_from_newest_first(rows: Sequence[Mapping[str, Any]], days: int) -> list[Candle]:
    """
    Normalize provider rows delivered newest first into an oldest-first window.

    Takes the newest `days + WINDOW_PADDING` rows, reverses them, and keeps
    the last `days` valid candles.
    """
    recent = list(rows[: days + WINDOW_PADDING])
    recent.reverse()
    candles = [c for c in (row_to_candle(r) for r in recent) if c is not None]
    return candles[-days:] if days > 0 else []


def candles_since(candles: Sequence[Candle], start_date: str) -> list[Candle]:
    """Candles from the first bar dated on or after start_date (whole list if none)."""
    for idx, candle in enumerate(candles):
        if candle.date >= start_date:
            return list(candles[idx:])
    return list(candles)
