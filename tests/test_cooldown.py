"""Tests for the cooldown store."""

import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from dilution_radar.core.cooldown import CooldownStore

AS_OF = date(2025, 1, 31)


def write_store(path: Path, tickers: dict) -> None:
    path.write_text(json.dumps({"tickers": tickers, "updatedAt": "2025-01-01T00:00:00Z"}))


class TestIsSuppressed:
    """Tests for the cooldown window boundary."""

    def test_29_days_suppressed(self, tmp_path: Path) -> None:
        """Test a ticker alerted 29 days ago is still on cooldown."""
        path = tmp_path / "shelf_posted.json"
        write_store(path, {"ACME": (AS_OF - timedelta(days=29)).isoformat()})
        assert CooldownStore(path, 30).is_suppressed("ACME", AS_OF) is True

    def test_30_days_not_suppressed(self, tmp_path: Path) -> None:
        """Test the cooldown ends exactly at cooldown_days."""
        path = tmp_path / "shelf_posted.json"
        write_store(path, {"ACME": (AS_OF - timedelta(days=30)).isoformat()})
        assert CooldownStore(path, 30).is_suppressed("ACME", AS_OF) is False

    def test_same_day_suppressed(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"ACME": AS_OF.isoformat()})
        assert CooldownStore(path, 30).is_suppressed("ACME", AS_OF) is True

    def test_unknown_ticker(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"ACME": AS_OF.isoformat()})
        assert CooldownStore(path, 30).is_suppressed("BETA", AS_OF) is False

    def test_zero_cooldown_never_suppresses(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"ACME": AS_OF.isoformat()})
        assert CooldownStore(path, 0).is_suppressed("ACME", AS_OF) is False

    def test_case_insensitive(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"acme": AS_OF.isoformat()})
        assert CooldownStore(path, 30).is_suppressed("ACME", AS_OF) is True

    def test_negative_cooldown_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            CooldownStore(tmp_path / "p.json", -1)


class TestLoad:
    """Tests for reading missing or corrupt stores."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = CooldownStore(tmp_path / "absent.json")
        assert store.load() == {}
        assert store.is_suppressed("ACME", AS_OF) is False

    def test_corrupt_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        path.write_text("{not json")
        assert CooldownStore(path).load() == {}

    def test_missing_tickers_key_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        path.write_text(json.dumps({"updatedAt": "x"}))
        assert CooldownStore(path).load() == {}

    def test_malformed_date_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"ACME": "someday"})
        store = CooldownStore(path)
        assert store.last_alert("ACME") is None
        assert store.is_suppressed("ACME", AS_OF) is False

    def test_entries_sorted(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        write_store(path, {"BETA": "2025-01-02", "ACME": "2025-01-01"})
        assert [e.ticker for e in CooldownStore(path).entries()] == ["ACME", "BETA"]


class TestRecordAlert:
    """Tests for persisting alerts."""

    def test_record_and_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "p.json"
        store = CooldownStore(path, 30)
        store.record_alert(["acme", "BETA"], AS_OF)

        payload = json.loads(path.read_text())
        assert payload["tickers"] == {"ACME": "2025-01-31", "BETA": "2025-01-31"}
        assert "updatedAt" in payload
        assert CooldownStore(path, 30).is_suppressed("ACME", AS_OF + timedelta(days=1)) is True

    def test_record_preserves_existing_entries(self, tmp_path: Path) -> None:
        """Test old entries are never expired from the file."""
        path = tmp_path / "p.json"
        write_store(path, {"OLD": "2020-01-01"})
        CooldownStore(path).record_alert(["NEW"], AS_OF)
        assert json.loads(path.read_text())["tickers"] == {"OLD": "2020-01-01", "NEW": "2025-01-31"}

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        path = tmp_path / "p.json"
        CooldownStore(path).record_alert(["ACME"], AS_OF)
        assert [p.name for p in tmp_path.iterdir()] == ["p.json"]
