"""Persisted ticker -> last-alert-date store that suppresses repeat alerts."""

import json
import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from pathlib import Path

from dilution_radar.models import CooldownEntry
from dilution_radar.utils.files import write_json_atomic

logger = logging.getLogger(__name__)


class CooldownStore:
    """
    Whole-file JSON store: {"tickers": {"TICK": "YYYY-MM-DD"}, "updatedAt": "..."}.

    Entries are never expired from the file; only their suppression effect
    ends once `cooldown_days` have passed. Writes go through a temp file and
    os.replace, so readers never see a half-written file. Concurrent runs are
    still last-writer-wins and must be serialized by the caller.
    """

    def __init__(self, path: str | Path, cooldown_days: int = 30):
        if cooldown_days < 0:
            raise ValueError(f"cooldown_days must be >= 0, got {cooldown_days}")
        self.path = Path(path)
        self.cooldown_days = cooldown_days
        self._tickers: dict[str, str] | None = None

    def load(self) -> dict[str, str]:
        """
        Read the store from disk (once) and return the ticker map.

        A missing, unreadable or malformed file is treated as empty.
        """
        if self._tickers is None:
            self._tickers = self._read()
        return self._tickers

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Cooldown store {self.path} unreadable, treating as empty: {e}")
            return {}

        tickers = payload.get("tickers") if isinstance(payload, dict) else None
        if not isinstance(tickers, dict):
            logger.warning(f"Cooldown store {self.path} has no tickers map, treating as empty")
            return {}
        return {
            str(ticker).upper(): str(last)
            for ticker, last in tickers.items()
            if isinstance(last, str)
        }

    def last_alert(self, ticker: str) -> date | None:
        raw = self.load().get(ticker.upper())
        if raw is None:
            return None
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            logger.debug(f"Ignoring malformed cooldown date for {ticker}: {raw!r}")
            return None

    def days_since_alert(self, ticker: str, as_of: date) -> int | None:
        last = self.last_alert(ticker)
        if last is None:
            return None
        return (as_of - last).days

    def is_suppressed(self, ticker: str, as_of: date) -> bool:
        """True iff the ticker alerted fewer than cooldown_days days before as_of."""
        days_since = self.days_since_alert(ticker, as_of)
        if days_since is None:
            return False
        return days_since < self.cooldown_days

    def entries(self) -> list[CooldownEntry]:
        return [CooldownEntry(ticker=t, last_alert_date=d) for t, d in sorted(self.load().items())]

    def record_alert(self, tickers: Iterable[str], as_of: date) -> None:
        """Stamp tickers with as_of and persist the whole file."""
        current = dict(self._read())
        stamp = as_of.isoformat()
        for ticker in tickers:
            current[ticker.upper()] = stamp
        self._write(current)
        self._tickers = current

    def _write(self, tickers: dict[str, str]) -> None:
        payload = {
            "tickers": tickers,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        write_json_atomic(self.path, payload, sort_keys=True)
