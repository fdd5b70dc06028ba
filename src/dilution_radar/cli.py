"""
Command line entry point.

    dilution-radar atm [--days 30] [--analyze]
    dilution-radar shelf|dilution|bankruptcy [--days 7] [--post]
    dilution-radar momentum [--tier 3] [--full]

Exit codes: 0 success, 1 error, 2 nothing new to report.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dilution_radar.config import Settings
from dilution_radar.core.narrative import (
    BANKRUPTCY_INSTRUCTIONS,
    DILUTION_INSTRUCTIONS,
    SHELF_INSTRUCTIONS,
    OpenAINarrativeGenerator,
)
from dilution_radar.core.posting import PostError, WebhookPoster
from dilution_radar.data.cache import SnapshotCache
from dilution_radar.data.edgar_client import EdgarSearchClient, EdgarSearchError
from dilution_radar.data.retry import ApiCallCounter
from dilution_radar.data.yfinance_client import YFinanceClient, get_run_date
from dilution_radar.pipelines.atm_scanner import render_atm_report, run_atm_scan
from dilution_radar.pipelines.bankruptcy_leaderboard import run_bankruptcy_leaderboard
from dilution_radar.pipelines.common import RunContext
from dilution_radar.pipelines.dilution_leaderboard import run_dilution_leaderboard
from dilution_radar.pipelines.momentum_scanner import render_momentum_report, run_momentum_scan
from dilution_radar.pipelines.shelf_leaderboard import run_shelf_leaderboard

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOTHING_NEW = 2

LEADERBOARDS = {
    "shelf": (run_shelf_leaderboard, SHELF_INSTRUCTIONS, 30),
    "dilution": (run_dilution_leaderboard, DILUTION_INSTRUCTIONS, 30),
    "bankruptcy": (run_bankruptcy_leaderboard, BANKRUPTCY_INSTRUCTIONS, 40),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dilution-radar",
        description="SEC filing scanners and dilution / bankruptcy risk leaderboards",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--data-dir", help="Directory for leaderboards and cooldown files")
    common.add_argument("--min-score", type=int, help="Minimum score to qualify")
    common.add_argument("--max", type=int, default=10, dest="max_count", help="Maximum entries")

    sub = parser.add_subparsers(dest="command", required=True)

    atm = sub.add_parser("atm", parents=[common], help="Scan recent ATM filers for momentum")
    atm.add_argument("--days", type=int, default=30)
    atm.add_argument("--analyze", action="store_true", help="Full analysis on top pumping names")

    for name, help_text in (
        ("shelf", "Weekly shelf offering radar"),
        ("dilution", "Weekly ATM dilution leaderboard"),
        ("bankruptcy", "Weekly bankruptcy watchlist"),
    ):
        board = sub.add_parser(name, parents=[common], help=help_text)
        board.add_argument("--days", type=int, default=7)
        board.add_argument("--post", action="store_true", help="Publish (requires DRY_RUN=false)")
        board.add_argument("--greeting", help="Line prepended to the post text")

    momentum = sub.add_parser("momentum", parents=[common], help="Multi-day runners scored for insolvency")
    momentum.add_argument("--tier", type=int, default=3, choices=(1, 2, 3))
    momentum.add_argument("--full", action="store_true", help="Full report for every TRIGGER")
    return parser


def build_context(settings: Settings, command: str) -> RunContext:
    """Wire real clients for one run."""
    counter = ApiCallCounter()
    as_of = get_run_date()
    cache = SnapshotCache(settings.cache_dir, settings.cache_ttl)

    generator = None
    if command in LEADERBOARDS and settings.openai_api_key:
        generator = OpenAINarrativeGenerator(
            api_key=settings.openai_api_key,
            instructions=LEADERBOARDS[command][1],
            model=settings.openai_model,
            timeout=settings.narrative_timeout,
        )
    poster = WebhookPoster(settings.post_webhook_url) if settings.post_webhook_url else None

    return RunContext(
        settings=settings,
        edgar=EdgarSearchClient(user_agent=settings.sec_user_agent, counter=counter),
        market=YFinanceClient(counter=counter, cache=cache, as_of=as_of),
        as_of=as_of,
        generator=generator,
        poster=poster,
        counter=counter,
    )


async def run_command(args: argparse.Namespace, ctx: RunContext) -> int:
    if args.command in LEADERBOARDS:
        runner, _, default_min = LEADERBOARDS[args.command]
        run = await runner(
            ctx,
            days=args.days,
            min_score=args.min_score if args.min_score is not None else default_min,
            max_count=args.max_count,
            post=args.post,
            greeting=args.greeting,
        )
        print(run.text)
        return EXIT_OK if run.has_entries else EXIT_NOTHING_NEW

    if args.command == "atm":
        result = await run_atm_scan(ctx, days=args.days, analyze=args.analyze)
        print(render_atm_report(result))
        return EXIT_OK if result.candidates else EXIT_NOTHING_NEW

    result = await run_momentum_scan(ctx, min_tier=args.tier, full=args.full)
    print(render_momentum_report(result))
    return EXIT_OK if result.runners else EXIT_NOTHING_NEW


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.data_dir:
        settings = replace(settings, data_dir=Path(args.data_dir))

    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    ctx = build_context(settings, args.command)
    try:
        return asyncio.run(run_command(args, ctx))
    except EdgarSearchError as e:
        logger.error(f"Filing search unavailable: {e}")
        return EXIT_ERROR
    except PostError as e:
        logger.error(f"Post failed, cooldown not recorded: {e}")
        return EXIT_ERROR
    except ValueError as e:
        logger.error(str(e))
        return EXIT_ERROR
    except Exception:
        logger.exception(f"{args.command} run failed")
        return EXIT_ERROR
    finally:
        ctx.market.close()
        ctx.market.cache.close()
        logger.info(f"API calls: {ctx.counter.to_dict()}")


if __name__ == "__main__":
    sys.exit(main())
