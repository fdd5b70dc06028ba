"""Tests for retry with backoff and API call counting."""

import asyncio
from unittest.mock import MagicMock

import pytest
from requests.exceptions import HTTPError

from dilution_radar.data import retry
from dilution_radar.data.retry import (
    ApiCallCounter,
    RetryExhaustedError,
    is_retryable_error,
    retry_with_backoff,
)


def http_error(status: int) -> HTTPError:
    response = MagicMock()
    response.status_code = status
    return HTTPError(f"{status} error", response=response)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(retry, "calculate_backoff", lambda attempt: 0.0)


class TestIsRetryableError:
    """Tests for transient error detection."""

    @pytest.mark.parametrize("status", [403, 429, 500, 503])
    def test_retryable_status(self, status: int) -> None:
        assert is_retryable_error(http_error(status))[0] is True

    def test_401_single_retry(self) -> None:
        assert is_retryable_error(http_error(401)) == (True, 1)

    def test_404_not_retryable(self) -> None:
        assert is_retryable_error(http_error(404)) == (False, 0)

    def test_message_patterns(self) -> None:
        assert is_retryable_error(Exception("Read timed out"))[0] is True
        assert is_retryable_error(Exception("Too Many Requests"))[0] is True
        assert is_retryable_error(ValueError("bad symbol"))[0] is False


class TestRetryWithBackoff:
    def test_success_first_try(self) -> None:
        counter = ApiCallCounter()
        result = asyncio.run(retry_with_backoff("op", lambda: 42, source="edgar", counter=counter))
        assert result.result == 42
        assert result.attempts == 1
        assert result.retry_trace is None
        assert counter.calls == {"edgar": 1}

    def test_recovers_after_transient_failure(self) -> None:
        calls = {"n": 0}

        def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise http_error(503)
            return "ok"

        counter = ApiCallCounter()
        result = asyncio.run(retry_with_backoff("op", flaky, source="yahoo", counter=counter))
        assert result.result == "ok"
        assert result.attempts == 3
        assert counter.total == 3
        assert len(result.to_provenance()["retry_trace"]) == 3

    def test_exhausted(self) -> None:
        def always_down() -> None:
            raise http_error(500)

        with pytest.raises(RetryExhaustedError) as excinfo:
            asyncio.run(retry_with_backoff("op", always_down, source="edgar", max_retries=2))
        assert isinstance(excinfo.value.last_error, HTTPError)

    def test_non_retryable_propagates(self) -> None:
        def broken() -> None:
            raise ValueError("bad input")

        counter = ApiCallCounter()
        with pytest.raises(ValueError):
            asyncio.run(retry_with_backoff("op", broken, source="edgar", counter=counter))
        assert counter.total == 1


class TestApiCallCounter:
    def test_to_dict_sorted_with_total(self) -> None:
        counter = ApiCallCounter()
        counter.record("yahoo", 2)
        counter.record("edgar")
        assert counter.to_dict() == {"total": 3, "edgar": 1, "yahoo": 2}
