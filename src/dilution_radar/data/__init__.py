"""Data layer: filing search, market data, caching and retry."""

from dilution_radar.data.cache import SnapshotCache, snapshot_uri
from dilution_radar.data.edgar_client import EdgarSearchClient, EdgarSearchError
from dilution_radar.data.retry import (
    ApiCallCounter,
    RetryExhaustedError,
    RetryResult,
    retry_with_backoff,
)
from dilution_radar.data.yfinance_client import (
    MarketDataError,
    QuarterlyStatements,
    YFinanceClient,
    get_run_date,
)

__all__ = [
    # Cache
    "SnapshotCache",
    "snapshot_uri",
    # EDGAR
    "EdgarSearchClient",
    "EdgarSearchError",
    # Retry
    "ApiCallCounter",
    "RetryExhaustedError",
    "RetryResult",
    "retry_with_backoff",
    # yfinance
    "MarketDataError",
    "QuarterlyStatements",
    "YFinanceClient",
    "get_run_date",
]
