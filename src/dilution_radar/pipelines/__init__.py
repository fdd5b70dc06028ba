"""Batch runs: weekly leaderboards and the ATM / momentum scanners."""

from dilution_radar.pipelines.analysis import TickerAnalysis, analyze_ticker
from dilution_radar.pipelines.atm_scanner import AtmScanResult, run_atm_scan
from dilution_radar.pipelines.bankruptcy_leaderboard import run_bankruptcy_leaderboard
from dilution_radar.pipelines.common import LeaderboardRun, RunContext
from dilution_radar.pipelines.dilution_leaderboard import run_dilution_leaderboard
from dilution_radar.pipelines.momentum_scanner import MomentumScanResult, run_momentum_scan
from dilution_radar.pipelines.shelf_leaderboard import run_shelf_leaderboard

__all__ = [
    "TickerAnalysis",
    "analyze_ticker",
    "AtmScanResult",
    "run_atm_scan",
    "run_bankruptcy_leaderboard",
    "LeaderboardRun",
    "RunContext",
    "run_dilution_leaderboard",
    "MomentumScanResult",
    "run_momentum_scan",
    "run_shelf_leaderboard",
]
