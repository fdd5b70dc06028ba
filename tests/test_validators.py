"""Tests for validators and SearchParams."""

from datetime import date

import pytest

from dilution_radar.utils.validators import (
    MAX_SEARCH_SIZE,
    SearchParams,
    validate_lookback_days,
)


class TestSearchParams:
    """Tests for SearchParams dataclass."""

    def test_forms_normalization(self) -> None:
        """Test forms are uppercased, trimmed and sorted."""
        params = SearchParams(query="q", forms=" s-3/a, S-3 ", start_date="2025-01-01", end_date="2025-01-08")
        assert params.forms == "S-3,S-3/A"

    def test_empty_forms_raises(self) -> None:
        with pytest.raises(ValueError, match="form type"):
            SearchParams(query="q", forms=" , ", start_date="2025-01-01", end_date="2025-01-08")

    def test_invalid_date_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid start_date"):
            SearchParams(query="q", forms="S-3", start_date="01/01/2025", end_date="2025-01-08")

    def test_reversed_range_raises(self) -> None:
        with pytest.raises(ValueError, match="after end_date"):
            SearchParams(query="q", forms="S-3", start_date="2025-01-09", end_date="2025-01-08")

    def test_size_clamped(self) -> None:
        params = SearchParams(query="q", forms="S-3", start_date="2025-01-01", end_date="2025-01-08", size=5000)
        assert params.size == MAX_SEARCH_SIZE

    def test_lookback(self) -> None:
        """Test a 7-day lookback ends on as_of."""
        params = SearchParams.lookback("q", "424B5", 7, date(2025, 1, 10))
        assert params.start_date == "2025-01-03"
        assert params.end_date == "2025-01-10"

    def test_query_params(self) -> None:
        params = SearchParams.lookback("going concern", "10-Q,10-K", 7, date(2025, 1, 10))
        query = params.to_query_params()

        assert query["forms"] == "10-K,10-Q"
        assert query["startdt"] == "2025-01-03"
        assert "from" not in query
        assert params.to_query_params(offset=100)["from"] == 100

    def test_immutable(self) -> None:
        """Test SearchParams is immutable."""
        params = SearchParams.lookback("q", "S-3", 7, date(2025, 1, 10))

        with pytest.raises(AttributeError):
            params.forms = "S-1"


class TestValidateLookbackDays:
    def test_valid(self) -> None:
        assert validate_lookback_days(30) == 30

    @pytest.mark.parametrize("days", [0, -1, 366])
    def test_out_of_range(self, days: int) -> None:
        with pytest.raises(ValueError, match="Invalid lookback"):
            validate_lookback_days(days)
