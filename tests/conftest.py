"""Pytest configuration and fixtures."""

from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from dilution_radar.config import Settings
from dilution_radar.data.yfinance_client import MarketDataError, QuarterlyStatements
from dilution_radar.models import Candle, TickerSnapshot
from dilution_radar.pipelines.common import RunContext

AS_OF = date(2025, 1, 10)


def make_hit(display_name: str, file_date: str, form: str = "424B5", adsh: str = "0001") -> dict:
    """Raw EDGAR full-text search hit."""
    return {
        "_source": {
            "display_names": [display_name],
            "file_date": file_date,
            "form": form,
            "ciks": ["0001234567"],
            "adsh": adsh,
        }
    }


def make_candles(closes: list[float], start_day: int = 1, opens: list[float] | None = None) -> list[Candle]:
    """Oldest-first candles with high = max(open, close) and low = min(open, close)."""
    opens = opens or closes
    return [
        Candle(
            date=f"2025-01-{start_day + i:02d}",
            open=o,
            high=max(o, c),
            low=min(o, c),
            close=c,
            volume=1_000_000,
        )
        for i, (o, c) in enumerate(zip(opens, closes))
    ]


def newest_first_rows(candles: list[Candle]) -> list[dict[str, Any]]:
    return [
        {"date": c.date, "open": c.open, "high": c.high, "low": c.low, "close": c.close, "volume": c.volume}
        for c in reversed(candles)
    ]


class FakeEdgar:
    """Returns canned hits per form list and records each search."""

    def __init__(self, hits_by_forms: dict[str, list[dict]] | None = None, error: Exception | None = None):
        self.hits_by_forms = hits_by_forms or {}
        self.error = error
        self.searches: list[Any] = []

    async def search(self, params: Any) -> list[dict]:
        self.searches.append(params)
        if self.error is not None:
            raise self.error
        return list(self.hits_by_forms.get(params.forms, []))


class FakeMarket:
    """In-memory market data keyed by ticker."""

    def __init__(
        self,
        snapshots: dict[str, TickerSnapshot] | None = None,
        statements: dict[str, QuarterlyStatements] | None = None,
        rows: dict[str, list[dict[str, Any]]] | None = None,
        gainers: list[dict[str, Any]] | None = None,
        failing: set[str] | None = None,
    ):
        self.snapshots = snapshots or {}
        self.statements = statements or {}
        self.rows = rows or {}
        self.gainers = gainers or []
        self.failing = failing or set()
        self.calls: list[tuple[str, str]] = []

    async def fetch_snapshot(self, ticker: str) -> TickerSnapshot:
        self.calls.append(("snapshot", ticker))
        if ticker in self.failing:
            raise MarketDataError(f"No market data for {ticker}")
        return self.snapshots.get(ticker) or TickerSnapshot(ticker=ticker)

    async def fetch_statements(self, ticker: str) -> QuarterlyStatements:
        self.calls.append(("statements", ticker))
        return self.statements.get(ticker, QuarterlyStatements())

    async def fetch_daily_rows(self, ticker: str, period: str = "3mo") -> list[dict[str, Any]]:
        self.calls.append(("rows", ticker))
        if ticker not in self.rows:
            raise MarketDataError(f"No price history for {ticker}")
        return self.rows[ticker]

    async def fetch_insider_trades(self, ticker: str) -> list[dict[str, Any]]:
        return []

    async def fetch_news_count(self, ticker: str, days: int = 7) -> int:
        return 0

    async def fetch_has_options(self, ticker: str) -> bool:
        return False

    async def fetch_day_gainers(self, count: int = 100) -> list[dict[str, Any]]:
        return list(self.gainers)


class RecordingPoster:
    def __init__(self) -> None:
        self.posts: list[str] = []

    def post(self, text: str, thread: str | None = None) -> str:
        self.posts.append(text)
        return f"post-{len(self.posts)}"


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings writing into a temp dir, no pauses, posting enabled."""
    return Settings(data_dir=tmp_path / "data", cache_dir=str(tmp_path / "cache"), enrich_delay=0.0, dry_run=False)


@pytest.fixture
def make_context(settings: Settings):
    def _make(edgar: FakeEdgar, market: FakeMarket, poster: RecordingPoster | None = None) -> RunContext:
        return RunContext(settings=settings, edgar=edgar, market=market, as_of=AS_OF, poster=poster)

    return _make


@pytest.fixture
def sample_ohlcv_df() -> pd.DataFrame:
    """Sample OHLCV DataFrame for testing."""
    return pd.DataFrame(
        {
            "Date": pd.date_range("2024-01-01", periods=10, freq="D"),
            "Open": [100.0, 101.0, 102.0, 101.5, 103.0, 104.0, 103.5, 105.0, 106.0, 105.5],
            "High": [101.0, 102.5, 103.0, 102.5, 104.5, 105.5, 105.0, 106.5, 107.0, 106.5],
            "Low": [99.5, 100.5, 101.0, 100.5, 102.0, 103.0, 102.5, 104.0, 105.0, 104.5],
            "Close": [100.5, 102.0, 101.5, 102.0, 104.0, 103.5, 104.5, 106.0, 105.5, 106.0],
            "Volume": [1000000] * 10,
        }
    ).set_index("Date")


@pytest.fixture
def sample_ohlcv_df_with_adj_close(sample_ohlcv_df: pd.DataFrame) -> pd.DataFrame:
    """Sample OHLCV DataFrame with Adj Close column."""
    df = sample_ohlcv_df.copy()
    df["Adj Close"] = df["Close"] - 0.5
    return df
