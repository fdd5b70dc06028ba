"""Retry with exponential backoff, provenance tracking and per-run API call counting."""

import asyncio
import logging
import os
import random
from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, TypeVar

from requests.exceptions import HTTPError

logger = logging.getLogger(__name__)

# Retry configuration
_max_retries = int(os.environ.get("YF_MAX_RETRIES", "3"))
_base_delay = float(os.environ.get("YF_BASE_DELAY", "1.0"))  # seconds
_max_delay = float(os.environ.get("YF_MAX_DELAY", "30.0"))  # seconds

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Raised when an upstream call fails after all retries."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error


@dataclass
class ApiCallCounter:
    """
    Explicit per-run count of upstream calls, keyed by source.

    Created once per run and handed to each client, so counts never leak
    between runs.
    """

    calls: dict[str, int] = field(default_factory=dict)

    def record(self, source: str, n: int = 1) -> None:
        self.calls[source] = self.calls.get(source, 0) + n

    @property
    def total(self) -> int:
        return sum(self.calls.values())

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, **dict(sorted(self.calls.items()))}


def is_retryable_error(error: Exception) -> tuple[bool, int]:
    """
    Check if an error is retryable (transient).

    Returns:
        Tuple of (is_retryable, max_retries_for_this_error)
    """
    if (
        isinstance(error, HTTPError)
        and hasattr(error, "response")
        and error.response is not None
    ):
        status_code = error.response.status_code
        if status_code == 401:
            # Yahoo "Invalid Crumb" rarely recovers with more than one retry
            return (True, 1)
        if status_code in (403, 429):
            # EDGAR answers throttled clients with 403
            return (True, _max_retries)
        if 500 <= status_code < 600:
            return (True, _max_retries)
        return (False, 0)

    error_str = str(error).lower()

    if "401" in error_str or "invalid crumb" in error_str:
        return (True, 1)

    retryable_patterns = [
        "rate limit",
        "too many requests",
        "connection",
        "timeout",
        "timed out",
        "temporary",
    ]
    if any(pattern in error_str for pattern in retryable_patterns):
        return (True, _max_retries)

    return (False, 0)


def calculate_backoff(attempt: int) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = _base_delay * (2**attempt)
    # Jitter of +/-25%
    jitter = delay * 0.25 * (2 * random.random() - 1)
    delay = delay + jitter
    return min(delay, _max_delay)


@dataclass
class RetryAttempt:
    """Record of a single retry attempt for provenance tracking."""

    attempt: int
    ok: bool
    error: str | None = None
    backoff_s: float | None = None


@dataclass
class RetryResult:
    """Result of a retry operation with provenance tracking."""

    result: Any
    attempts: int
    total_backoff_seconds: float
    source: str
    # Per-attempt trace for debugging (capped at 3 entries)
    retry_trace: list[RetryAttempt] | None = None

    def to_provenance(self) -> dict[str, Any]:
        """Convert to provenance dict for data_provenance field."""
        prov: dict[str, Any] = {
            "source": self.source,
            "attempts": self.attempts,
            "retries_exhausted": False,  # Exhaustion raises RetryExhaustedError instead
            "total_backoff_seconds": self.total_backoff_seconds,
        }
        if self.retry_trace:
            prov["retry_trace"] = [
                {
                    "attempt": t.attempt,
                    "ok": t.ok,
                    **({"error": t.error} if t.error else {}),
                    **({"backoff_s": t.backoff_s} if t.backoff_s else {}),
                }
                for t in self.retry_trace[-3:]
            ]
        return prov


async def retry_with_backoff(
    operation_name: str,
    sync_func: Callable[[], T],
    *,
    source: str,
    executor: Executor | None = None,
    counter: ApiCallCounter | None = None,
    max_retries: int = _max_retries,
) -> RetryResult:
    """
    Execute a blocking function in an executor with retry logic.

    Args:
        operation_name: Name for logging (e.g., "fetch_history(AAPL)")
        sync_func: Synchronous function to execute
        source: Upstream name for provenance and call counting
        executor: Executor to run in (default loop executor if None)
        counter: Per-run call counter; every attempt is counted
        max_retries: Maximum number of retry attempts

    Returns:
        RetryResult with result and provenance info

    Raises:
        RetryExhaustedError: If all retries exhausted
        Exception: Non-retryable errors propagate unchanged
    """
    last_error: Exception | None = None
    total_backoff: float = 0.0
    retry_trace: list[RetryAttempt] = []

    for attempt in range(max_retries + 1):
        if counter is not None:
            counter.record(source)
        try:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(executor, sync_func)
            retry_trace.append(RetryAttempt(attempt=attempt + 1, ok=True))
            return RetryResult(
                result=result,
                attempts=attempt + 1,
                total_backoff_seconds=round(total_backoff, 2),
                source=source,
                retry_trace=retry_trace if len(retry_trace) > 1 else None,
            )
        except Exception as e:
            last_error = e
            retry_trace.append(RetryAttempt(attempt=attempt + 1, ok=False, error=type(e).__name__))

            is_retryable, error_max_retries = is_retryable_error(e)
            if not is_retryable:
                raise

            effective_max_retries = min(max_retries, error_max_retries)
            if attempt >= effective_max_retries:
                logger.warning(
                    f"{operation_name}: Failed after {attempt + 1} attempts "
                    f"(limit={effective_max_retries + 1}). Last error: {e}"
                )
                raise RetryExhaustedError(
                    f"Failed after {attempt + 1} attempts: {e}",
                    last_error=last_error,
                ) from e

            delay = calculate_backoff(attempt)
            total_backoff += delay
            retry_trace[-1].backoff_s = round(delay, 2)
            logger.info(
                f"{operation_name}: Attempt {attempt + 1} failed ({e}). "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise RetryExhaustedError(
        f"Failed after {max_retries + 1} attempts",
        last_error=last_error,
    )
