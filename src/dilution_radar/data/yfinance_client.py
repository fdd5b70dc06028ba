"""Async yfinance market data client with bounded concurrency, retry logic and caching."""

import asyncio
import logging
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, TypeVar

import pandas as pd
import pytz
import yfinance as yf

from dilution_radar.data.cache import SnapshotCache, snapshot_uri
from dilution_radar.data.retry import ApiCallCounter, RetryExhaustedError, retry_with_backoff
from dilution_radar.models import TickerSnapshot, safe_float
from dilution_radar.utils.ohlcv import standardize_ohlcv

logger = logging.getLogger(__name__)

_max_workers = int(os.environ.get("YF_MAX_WORKERS", "4"))

T = TypeVar("T")

# yfinance statement row label -> record key
BALANCE_FIELDS = {
    "Cash And Cash Equivalents": "cashAndCashEquivalents",
    "Cash Cash Equivalents And Short Term Investments": "cashAndShortTermInvestments",
    "Total Debt": "totalDebt",
    "Current Debt": "shortTermDebt",
    "Long Term Debt": "longTermDebt",
    "Total Assets": "totalAssets",
    "Total Liabilities Net Minority Interest": "totalLiabilities",
    "Working Capital": "workingCapital",
    "Retained Earnings": "retainedEarnings",
}
INCOME_FIELDS = {
    "Total Revenue": "revenue",
    "Net Income": "netIncome",
    "EBITDA": "ebitda",
    "EBIT": "ebit",
    "Operating Income": "operatingIncome",
    "Interest Expense": "interestExpense",
}
CASH_FLOW_FIELDS = {
    "Operating Cash Flow": "operatingCashFlow",
    "Free Cash Flow": "freeCashFlow",
}


class MarketDataError(Exception):
    """Raised when market data for a ticker is missing or unusable."""


@dataclass
class QuarterlyStatements:
    """Quarterly statement records, newest quarter first."""

    balance_sheets: list[dict[str, Any]] = field(default_factory=list)
    income_statements: list[dict[str, Any]] = field(default_factory=list)
    cash_flows: list[dict[str, Any]] = field(default_factory=list)


def get_run_date(tz: str = "America/New_York") -> date:
    """Calendar date of the run in the exchange time zone."""
    return datetime.now(pytz.timezone(tz)).date()


def statement_records(df: pd.DataFrame | None, fields: dict[str, str]) -> list[dict[str, Any]]:
    """
    Flatten a yfinance statement frame (rows = line items, columns = period
    end dates) into records sorted newest period first.
    """
    if df is None or df.empty:
        return []
    columns = sorted(df.columns, key=lambda c: pd.Timestamp(c), reverse=True)
    records = []
    for col in columns:
        record: dict[str, Any] = {"date": pd.Timestamp(col).strftime("%Y-%m-%d")}
        for label, key in fields.items():
            if label in df.index:
                record[key] = safe_float(df.at[label, col])
        records.append(record)
    return records


def snapshot_from_info(ticker: str, info: dict[str, Any]) -> TickerSnapshot:
    """Map a yfinance info dict onto a TickerSnapshot (TTM cash flow)."""

    def pick(*keys: str) -> float | None:
        for key in keys:
            value = safe_float(info.get(key))
            if value is not None:
                return value
        return None

    return TickerSnapshot(
        ticker=ticker,
        company_name=info.get("longName") or info.get("shortName"),
        price=pick("currentPrice", "regularMarketPrice"),
        market_cap=pick("marketCap"),
        volume=pick("volume", "regularMarketVolume"),
        avg_volume=pick("averageVolume", "averageDailyVolume3Month"),
        day_change_pct=pick("regularMarketChangePercent"),
        year_high=pick("fiftyTwoWeekHigh"),
        year_low=pick("fiftyTwoWeekLow"),
        cash=pick("totalCash"),
        total_debt=pick("totalDebt"),
        operating_cash_flow=pick("operatingCashflow"),
        ocf_period_months=12,
        shares_outstanding=pick("sharesOutstanding"),
    )


def count_recent_news(items: list[dict[str, Any]], now: datetime, days: int = 7) -> int:
    """Count news items published within `days` of now (both yfinance news layouts)."""
    cutoff = now - timedelta(days=days)
    count = 0
    for item in items or []:
        published: datetime | None = None
        epoch = item.get("providerPublishTime")
        if epoch is not None:
            published = datetime.fromtimestamp(float(epoch), tz=timezone.utc)
        else:
            raw = (item.get("content") or {}).get("pubDate")
            if raw:
                try:
                    published = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
                except ValueError:
                    published = None
        if published is not None and published >= cutoff:
            count += 1
    return count


def insider_records(df: pd.DataFrame | None) -> list[dict[str, Any]]:
    """Insider transactions as {transactionType, shares, value} records."""
    if df is None or df.empty:
        return []
    records = []
    for row in df.to_dict("records"):
        kind = " ".join(
            str(row.get(k) or "") for k in ("Transaction", "Text") if row.get(k)
        ).strip()
        records.append(
            {
                "transactionType": kind,
                "shares": safe_float(row.get("Shares")),
                "value": safe_float(row.get("Value")),
            }
        )
    return records


class YFinanceClient:
    """
    Market data for enrichment.

    Blocking yfinance calls run in a bounded thread pool guarded by a
    semaphore, with retry and backoff. Payloads are cached per ticker, kind
    and run date when a SnapshotCache is given.
    """

    def __init__(
        self,
        counter: ApiCallCounter | None = None,
        cache: SnapshotCache | None = None,
        as_of: date | None = None,
        max_workers: int = _max_workers,
    ):
        self.counter = counter if counter is not None else ApiCallCounter()
        self.cache = cache
        self.as_of = (as_of or get_run_date()).isoformat()
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._semaphore = asyncio.Semaphore(max_workers)

    async def _call(self, operation_name: str, sync_func: Callable[[], T]) -> T:
        async with self._semaphore:
            try:
                retry_result = await retry_with_backoff(
                    operation_name,
                    sync_func,
                    source="yfinance",
                    executor=self._executor,
                    counter=self.counter,
                )
            except RetryExhaustedError as e:
                raise MarketDataError(f"{operation_name}: {e}") from e
            return retry_result.result

    async def _cached(self, ticker: str, kind: str, loader: Callable[[], Any]) -> Any:
        uri = snapshot_uri(ticker, kind, self.as_of)
        if self.cache is not None:
            hit = self.cache.load(uri)
            if hit is not None:
                logger.debug(f"Cache hit {uri}")
                return hit
        payload = await loader()
        if self.cache is not None:
            self.cache.store(uri, payload)
        return payload

    async def fetch_snapshot(self, ticker: str) -> TickerSnapshot:
        """
        Quote and TTM fundamentals.

        Raises:
            MarketDataError: no info returned or retries exhausted
        """
        symbol = ticker.upper().strip()

        async def load() -> dict[str, Any]:
            info = await self._call(f"fetch_info({symbol})", lambda: yf.Ticker(symbol).info)
            if not info:
                raise MarketDataError(f"No market data for {symbol}")
            return asdict(snapshot_from_info(symbol, info))

        return TickerSnapshot(**await self._cached(symbol, "quote", load))

    async def fetch_statements(self, ticker: str) -> QuarterlyStatements:
        """Quarterly balance sheet, income statement and cash flow records."""
        symbol = ticker.upper().strip()

        def _fetch() -> dict[str, list[dict[str, Any]]]:
            t = yf.Ticker(symbol)
            return {
                "balance_sheets": statement_records(t.quarterly_balance_sheet, BALANCE_FIELDS),
                "income_statements": statement_records(t.quarterly_income_stmt, INCOME_FIELDS),
                "cash_flows": statement_records(t.quarterly_cashflow, CASH_FLOW_FIELDS),
            }

        async def load() -> dict[str, Any]:
            return await self._call(f"fetch_statements({symbol})", _fetch)

        return QuarterlyStatements(**await self._cached(symbol, "statements", load))

    async def fetch_daily_rows(self, ticker: str, period: str = "3mo") -> list[dict[str, Any]]:
        """
        Daily OHLCV rows, newest first.

        Callers normalize with window_from_newest_first before analysis.
        """
        symbol = ticker.upper().strip()

        def _fetch() -> list[dict[str, Any]]:
            df = yf.Ticker(symbol).history(period=period, interval="1d", auto_adjust=False)
            if df.empty:
                raise MarketDataError(f"No price history for {symbol}")
            rows = standardize_ohlcv(df).to_dict("records")
            rows.reverse()
            return rows

        async def load() -> list[dict[str, Any]]:
            return await self._call(f"fetch_history({symbol})", _fetch)

        return await self._cached(symbol, f"history-{period}", load)

    async def fetch_news_count(self, ticker: str, days: int = 7) -> int:
        symbol = ticker.upper().strip()
        items = await self._call(f"fetch_news({symbol})", lambda: yf.Ticker(symbol).news or [])
        return count_recent_news(items, datetime.now(timezone.utc), days)

    async def fetch_has_options(self, ticker: str) -> bool:
        symbol = ticker.upper().strip()
        expirations = await self._call(
            f"fetch_options({symbol})", lambda: yf.Ticker(symbol).options
        )
        return bool(expirations)

    async def fetch_insider_trades(self, ticker: str) -> list[dict[str, Any]]:
        symbol = ticker.upper().strip()

        async def load() -> list[dict[str, Any]]:
            return await self._call(
                f"fetch_insiders({symbol})",
                lambda: insider_records(yf.Ticker(symbol).insider_transactions),
            )

        return await self._cached(symbol, "insiders", load)

    async def fetch_day_gainers(self, count: int = 100) -> list[dict[str, Any]]:
        """Today's top gainers from the predefined Yahoo screener."""

        def _fetch() -> list[dict[str, Any]]:
            response = yf.screen("day_gainers", count=count)
            return list((response or {}).get("quotes") or [])

        return await self._call("screen(day_gainers)", _fetch)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
