"""Tests for the command line entry point and settings."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import AS_OF, FakeEdgar, FakeMarket, make_hit

from dilution_radar import cli
from dilution_radar.config import Settings
from dilution_radar.core.posting import PostError
from dilution_radar.data.edgar_client import EdgarSearchError
from dilution_radar.models import TickerSnapshot
from dilution_radar.pipelines import shelf_leaderboard
from dilution_radar.pipelines.common import RunContext


class ClosableMarket(FakeMarket):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cache = MagicMock()
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FailingPoster:
    def post(self, text: str, thread: str | None = None) -> str:
        raise PostError("webhook returned 500")


def acme_edgar() -> FakeEdgar:
    return FakeEdgar({"S-3,S-3/A": [make_hit("Acme Corp  (ACME)", "2025-01-09", form="S-3")]})


def acme_market() -> ClosableMarket:
    return ClosableMarket(
        snapshots={
            "ACME": TickerSnapshot(
                ticker="ACME", cash=2e6, total_debt=30e6, operating_cash_flow=-12e6, market_cap=20e6
            )
        }
    )


@pytest.fixture
def wire(monkeypatch: pytest.MonkeyPatch):
    """Replace build_context with in-memory collaborators."""
    monkeypatch.setattr(shelf_leaderboard, "PASS_DELAY", 0)
    monkeypatch.setenv("ENRICH_DELAY", "0")
    monkeypatch.delenv("DRY_RUN", raising=False)
    contexts: list[RunContext] = []

    def _wire(edgar, market, poster=None):
        def build(settings: Settings, command: str) -> RunContext:
            ctx = RunContext(settings=settings, edgar=edgar, market=market, as_of=AS_OF, poster=poster)
            contexts.append(ctx)
            return ctx

        monkeypatch.setattr(cli, "build_context", build)
        return contexts

    return _wire


class TestMain:
    """Tests for exit codes."""

    def test_entries_exit_zero(self, wire, tmp_path: Path, capsys) -> None:
        contexts = wire(acme_edgar(), acme_market())
        assert cli.main(["shelf", "--data-dir", str(tmp_path)]) == cli.EXIT_OK

        assert "$ACME" in capsys.readouterr().out
        assert (tmp_path / "shelf_leaderboard.json").exists()
        assert contexts[0].market.closed is True

    def test_nothing_new_exit_two(self, wire, tmp_path: Path, capsys) -> None:
        wire(FakeEdgar(), ClosableMarket())
        assert cli.main(["shelf", "--data-dir", str(tmp_path)]) == cli.EXIT_NOTHING_NEW
        assert shelf_leaderboard.EMPTY_POST in capsys.readouterr().out

    def test_min_score_flag(self, wire, tmp_path: Path) -> None:
        wire(acme_edgar(), acme_market())
        assert cli.main(["shelf", "--data-dir", str(tmp_path), "--min-score", "95"]) == cli.EXIT_NOTHING_NEW

    def test_search_failure_exit_one(self, wire, tmp_path: Path) -> None:
        wire(FakeEdgar(error=EdgarSearchError("down")), ClosableMarket())
        assert cli.main(["dilution", "--data-dir", str(tmp_path)]) == cli.EXIT_ERROR

    def test_dry_run_by_default(self, wire, tmp_path: Path) -> None:
        """Test --post without DRY_RUN=false never reaches the poster."""
        wire(acme_edgar(), acme_market(), FailingPoster())
        assert cli.main(["shelf", "--post", "--data-dir", str(tmp_path)]) == cli.EXIT_OK
        assert not (tmp_path / "shelf_posted.json").exists()

    def test_post_failure_exit_one(self, wire, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DRY_RUN", "false")
        wire(acme_edgar(), acme_market(), FailingPoster())
        assert cli.main(["shelf", "--post", "--data-dir", str(tmp_path)]) == cli.EXIT_ERROR
        assert not (tmp_path / "shelf_posted.json").exists()

    def test_invalid_tier_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.main(["momentum", "--tier", "4"])


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DRY_RUN", "DATA_DIR", "SHELF_COOLDOWN_DAYS", "OPENAI_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()

        assert settings.dry_run is True
        assert settings.openai_api_key is None
        assert settings.cooldown_for("shelf") == 30
        assert settings.posted_path("bankruptcy") == Path("data") / "bankruptcy_lb_posted.json"
        assert settings.leaderboard_path("dilution") == Path("data") / "dilution_leaderboard.json"

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DRY_RUN", "false")
        monkeypatch.setenv("SHELF_COOLDOWN_DAYS", "14")
        monkeypatch.setenv("ENRICH_DELAY", "not-a-number")
        settings = Settings.from_env()

        assert settings.dry_run is False
        assert settings.cooldown_for("shelf") == 14
        assert settings.enrich_delay == 0.2
