# PlayLog/cli.py

import argparse
import logging
import sys
from datetime import date, timedelta

from dotenv import load_dotenv
load_dotenv()

from PlayLog.config import Settings
from PlayLog.database import init_database
from PlayLog.database.store import PlaytimeStore
from PlayLog.errors import PlayLogError
from PlayLog.ingestion.prober import poll_once
from PlayLog.ingestion.steam import SteamClient
from PlayLog.processing.clock import LocalClock
from PlayLog.processing.sessions import segment_window
from PlayLog.summary.playtime import daily_total, period_total, range_total

logging.basicConfig(
    format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-25s | %(message)s",
    level=logging.INFO,
)
log = logging.getLogger("PlayLog.cli")


def _target_day(args_ns, clock: LocalClock) -> date:
    if args_ns.days_ago is not None:
        return clock.today() - timedelta(days=args_ns.days_ago)
    return args_ns.day or (clock.today() - timedelta(days=1))


def handle_init_db(args_ns, current_settings: Settings):
    init_database(current_settings.db_path)
    log.info(f"DuckDB database initialized at {current_settings.db_path}.")


def handle_probe(args_ns, current_settings: Settings):
    with PlaytimeStore.open(current_settings.db_path) as store:
        result = poll_once(store, SteamClient(current_settings))
    log.info(f"CLI: Probe finished: {result.games_updated} updated, {result.games_failed} failed.")


def handle_segment(args_ns, current_settings: Settings):
    clock = LocalClock.from_settings(current_settings)
    target_day = _target_day(args_ns, clock)
    log.info(f"CLI: Initiating session segmentation for {target_day} (dry run: {args_ns.dry_run})...")
    with PlaytimeStore.open(current_settings.db_path) as store:
        result = segment_window(store, target_day, current_settings, clock=clock, dry_run=args_ns.dry_run)
    log.info(f"CLI: {len(result.sessions)} sessions, {result.total_minutes} minutes for {result.window_id}.")


def handle_totals(args_ns, current_settings: Settings):
    with PlaytimeStore.open(current_settings.db_path) as store:
        if args_ns.start or args_ns.end:
            totals = range_total(store, args_ns.start, args_ns.end)
        elif args_ns.period:
            totals = period_total(store, args_ns.period, LocalClock.from_settings(current_settings).today())
        else:
            day = args_ns.day or LocalClock.from_settings(current_settings).today().isoformat()
            totals = daily_total(store, day)
    print(totals.model_dump_json(indent=2))


def handle_serve(args_ns, current_settings: Settings):
    import uvicorn
    from PlayLog.api.main import app
    uvicorn.run(app, host=current_settings.api_host, port=current_settings.api_port, log_level="info")


def handle_daemon(args_ns, current_settings: Settings):
    from PlayLog.daemon import main as run_daemon
    run_daemon(current_settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playlog",
        description="PlayLog: Steam play-session tracking and playtime totals"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for all PlayLog modules.")
    subparsers = parser.add_subparsers(dest="command", title="Available Commands", required=True)

    parser_dbinit = subparsers.add_parser("init-db", help="Initialize the DuckDB database and create all tables.")
    parser_dbinit.set_defaults(func=handle_init_db)

    parser_probe = subparsers.add_parser("probe", help="Read the Steam counters once and record playtime deltas.")
    parser_probe.set_defaults(func=handle_probe)

    parser_segment = subparsers.add_parser("segment", help="Build play sessions for a local day from recorded probes.")
    parser_segment.add_argument("--day", type=lambda s: date.fromisoformat(s) if s else None, help="Day YYYY-MM-DD (default: yesterday).")
    parser_segment.add_argument("--days-ago", type=int, default=None, help="Days ago (overrides --day).")
    parser_segment.add_argument("--dry-run", action="store_true", help="Log the sessions that would be written without persisting them.")
    parser_segment.set_defaults(func=handle_segment)

    parser_totals = subparsers.add_parser("totals", help="Print playtime totals as JSON.")
    parser_totals.add_argument("--day", help="Local date YYYY-MM-DD (default: today).")
    parser_totals.add_argument("--start", help="Range start YYYY-MM-DD (inclusive).")
    parser_totals.add_argument("--end", help="Range end YYYY-MM-DD (inclusive).")
    parser_totals.add_argument("--period", choices=["week", "month"], help="Trailing week or month ending today.")
    parser_totals.set_defaults(func=handle_totals)

    parser_serve = subparsers.add_parser("serve", help="Run the playtime query API.")
    parser_serve.set_defaults(func=handle_serve)

    parser_daemon = subparsers.add_parser("daemon", help="Run the prober and daily segmentation on a schedule.")
    parser_daemon.set_defaults(func=handle_daemon)
    return parser


def main(argv=None):
    settings = Settings()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger("PlayLog").setLevel(logging.DEBUG)
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        for handler in root_logger.handlers:
            handler.setLevel(logging.DEBUG)
        log.debug("Debug logging enabled via CLI.")

    try:
        args.func(args, settings)
    except PlayLogError as e:
        log.error(f"CLI: {args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
