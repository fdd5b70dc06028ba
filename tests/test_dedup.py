"""Tests for filing deduplication."""

from datetime import date

from conftest import AS_OF, make_hit

from dilution_radar.core.dedup import (
    FormPass,
    company_name_from_display,
    days_between,
    dedupe_hits,
    dedupe_passes,
    extract_ticker,
    filing_from_hit,
    sorted_filings,
)


class TestExtractTicker:
    """Tests for ticker extraction from display names."""

    def test_first_parenthesized_group(self) -> None:
        """Test the first 1-5 letter group wins."""
        assert extract_ticker("Acme Corp  (ACME, ACMEW)  (CIK 0001234567)") == "ACME"

    def test_no_ticker(self) -> None:
        """Test display names without a ticker return None."""
        assert extract_ticker("Private Holdings LLC  (CIK 0001234567)") is None

    def test_none_input(self) -> None:
        assert extract_ticker(None) is None

    def test_lowercase_not_matched(self) -> None:
        """Test lowercase groups are not tickers."""
        assert extract_ticker("Acme (acme)") is None


class TestFilingFromHit:
    """Tests for building a Filing from a search hit."""

    def test_basic_fields(self) -> None:
        hit = make_hit("Acme Corp  (ACME)  (CIK 0001234567)", "2025-01-08", form="424B5", adsh="0001-25-1")
        filing = filing_from_hit(hit, AS_OF)

        assert filing is not None
        assert filing.ticker == "ACME"
        assert filing.company_name == "Acme Corp"
        assert filing.form_type == "424B5"
        assert filing.days_since_filing == 2
        assert filing.cik == "0001234567"
        assert filing.accession == "0001-25-1"

    def test_default_form_when_missing(self) -> None:
        """Test the pass default form fills a missing form field."""
        hit = make_hit("Acme Corp  (ACME)", "2025-01-08", form="")
        filing = filing_from_hit(hit, AS_OF, default_form="S-3")
        assert filing.form_type == "S-3"

    def test_hit_without_ticker_dropped(self) -> None:
        assert filing_from_hit(make_hit("Nameless Trust", "2025-01-08"), AS_OF) is None

    def test_company_name_fallback(self) -> None:
        assert company_name_from_display(None, "ACME") == "ACME"


class TestDaysBetween:
    def test_future_date_clamped(self) -> None:
        """Test filings dated after as_of count as zero days old."""
        assert days_between("2025-01-12", AS_OF) == 0

    def test_bad_date(self) -> None:
        assert days_between("not-a-date", AS_OF) == 0

    def test_timestamp_suffix_ignored(self) -> None:
        assert days_between("2025-01-03T00:00:00", date(2025, 1, 10)) == 7


class TestDedupeHits:
    """Tests for single-pass dedup."""

    def test_latest_date_wins(self) -> None:
        hits = [
            make_hit("Acme Corp  (ACME)", "2025-01-03", adsh="a"),
            make_hit("Acme Corp  (ACME)", "2025-01-08", adsh="b"),
            make_hit("Acme Corp  (ACME)", "2025-01-05", adsh="c"),
        ]
        tickers = dedupe_hits(hits, AS_OF)
        assert list(tickers) == ["ACME"]
        assert tickers["ACME"].accession == "b"

    def test_equal_dates_keep_last_seen(self) -> None:
        """Test ties on file date keep the later arrival."""
        hits = [
            make_hit("Acme Corp  (ACME)", "2025-01-08", adsh="first"),
            make_hit("Acme Corp  (ACME)", "2025-01-08", adsh="second"),
        ]
        assert dedupe_hits(hits, AS_OF)["ACME"].accession == "second"

    def test_one_entry_per_ticker(self) -> None:
        hits = [
            make_hit("Acme Corp  (ACME)", "2025-01-03"),
            make_hit("Beta Inc  (BETA)", "2025-01-04"),
            make_hit("No Ticker LLC", "2025-01-05"),
            make_hit("Acme Corp  (ACME)", "2025-01-06"),
        ]
        tickers = dedupe_hits(hits, AS_OF)
        assert sorted(tickers) == ["ACME", "BETA"]

    def test_cik_only_filers_dropped(self) -> None:
        """Test filers listed only by CIK are not merged under a shared ticker."""
        hits = [
            make_hit("Private Holdings LLC  (CIK 0001234567)", "2025-01-03"),
            make_hit("Other Trust  (CIK 0007654321)", "2025-01-04"),
            make_hit("Beta Inc  (BETA)  (CIK 0001111111)", "2025-01-05"),
        ]
        assert list(dedupe_hits(hits, AS_OF)) == ["BETA"]

    def test_empty(self) -> None:
        assert dedupe_hits([], AS_OF) == {}


class TestDedupePasses:
    """Tests for multi-form priority passes."""

    S3 = FormPass("S-3", "S-3,S-3/A", "q", "S-3")
    S1 = FormPass("S-1", "S-1,S-1/A", "q", "S-1")
    S8 = FormPass("S-8", "S-8", "q", "S-8", only_if_absent=True)

    def test_later_pass_overwrites_by_date(self) -> None:
        """Test a newer S-1 replaces an older S-3 for the same ticker."""
        passes = [
            (self.S3, [make_hit("Acme  (ACME)", "2025-01-03", form="S-3")]),
            (self.S1, [make_hit("Acme  (ACME)", "2025-01-05", form="S-1")]),
        ]
        assert dedupe_passes(passes, AS_OF)["ACME"].form_type == "S-1"

    def test_older_later_pass_does_not_overwrite(self) -> None:
        passes = [
            (self.S3, [make_hit("Acme  (ACME)", "2025-01-05", form="S-3")]),
            (self.S1, [make_hit("Acme  (ACME)", "2025-01-03", form="S-1")]),
        ]
        assert dedupe_passes(passes, AS_OF)["ACME"].form_type == "S-3"

    def test_only_if_absent_never_replaces(self) -> None:
        """Test a newer S-8 cannot displace an S-3 chosen earlier."""
        passes = [
            (self.S3, [make_hit("Acme  (ACME)", "2025-01-02", form="S-3")]),
            (self.S8, [make_hit("Acme  (ACME)", "2025-01-09", form="S-8")]),
        ]
        assert dedupe_passes(passes, AS_OF)["ACME"].form_type == "S-3"

    def test_only_if_absent_fills_new_ticker(self) -> None:
        passes = [
            (self.S3, []),
            (self.S8, [make_hit("Beta  (BETA)", "2025-01-09", form="S-8")]),
        ]
        assert dedupe_passes(passes, AS_OF)["BETA"].form_type == "S-8"


class TestSortedFilings:
    def test_newest_first(self) -> None:
        hits = [
            make_hit("Acme  (ACME)", "2025-01-03"),
            make_hit("Beta  (BETA)", "2025-01-08"),
            make_hit("Core  (CORE)", "2025-01-05"),
        ]
        ordered = sorted_filings(dedupe_hits(hits, AS_OF))
        assert [f.ticker for f in ordered] == ["BETA", "CORE", "ACME"]
