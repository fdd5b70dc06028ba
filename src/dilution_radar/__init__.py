"""Dilution Radar: SEC filing scanners and dilution/bankruptcy risk leaderboards."""

import os


def get_version() -> str:
    """Get version with fallback for dev mode."""
    if version := os.environ.get("RADAR_VERSION"):
        return version
    try:
        from importlib.metadata import version as pkg_version

        return pkg_version("dilution-radar")
    except Exception:
        return "dev"


VERSION = get_version()
# Bump when the leaderboard file layout changes materially
# v1: Initial layout (generatedAt, period, dateRange, counts, leaderboard)
# v2: Added meta block and data_provenance
SCHEMA_VERSION = "2"
