"""Environment-driven settings for scanner runs."""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Immutable run settings. Build with Settings.from_env()."""

    data_dir: Path = Path("data")
    cache_dir: str = ".cache/radar"
    cache_ttl: int = 3600
    log_level: str = "INFO"
    sec_user_agent: str = "DilutionRadar/1.0 (radar@example.com)"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    narrative_timeout: float = 30.0
    post_webhook_url: str | None = None
    # Posting is a no-op unless DRY_RUN is explicitly "false"
    dry_run: bool = True
    enrich_delay: float = 0.2
    cooldown_days: dict[str, int] = field(
        default_factory=lambda: {"shelf": 30, "dilution": 30, "bankruptcy": 30}
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment."""
        return cls(
            data_dir=Path(os.environ.get("DATA_DIR", "data")),
            cache_dir=os.environ.get("CACHE_DIR", ".cache/radar"),
            cache_ttl=_env_int("CACHE_TTL", 3600),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            sec_user_agent=os.environ.get(
                "SEC_USER_AGENT", "DilutionRadar/1.0 (radar@example.com)"
            ),
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            openai_model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
            narrative_timeout=_env_float("NARRATIVE_TIMEOUT", 30.0),
            post_webhook_url=os.environ.get("POST_WEBHOOK_URL") or None,
            dry_run=_env_bool("DRY_RUN", True),
            enrich_delay=_env_float("ENRICH_DELAY", 0.2),
            cooldown_days={
                "shelf": _env_int("SHELF_COOLDOWN_DAYS", 30),
                "dilution": _env_int("DILUTION_COOLDOWN_DAYS", 30),
                "bankruptcy": _env_int("BANKRUPTCY_LB_COOLDOWN_DAYS", 30),
            },
        )

    def cooldown_for(self, board: str) -> int:
        """Cooldown window in days for a leaderboard name."""
        return self.cooldown_days.get(board, 30)

    def posted_path(self, board: str) -> Path:
        """Cooldown store file for a leaderboard name."""
        name = "bankruptcy_lb" if board == "bankruptcy" else board
        return self.data_dir / f"{name}_posted.json"

    def leaderboard_path(self, board: str) -> Path:
        """Output file for a leaderboard name."""
        return self.data_dir / f"{board}_leaderboard.json"
