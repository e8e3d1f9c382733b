"""
PlayLog scheduler daemon.

Probes the Steam counters on a fixed cadence and segments every local day
not yet segmented once per day.
"""
import logging
import sys
import time
from datetime import date, timedelta
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore
from PlayLog.ingestion.prober import poll_once
from PlayLog.ingestion.steam import SteamClient
from PlayLog.processing.clock import LocalClock
from PlayLog.processing.sessions import segment_window
from PlayLog.runner import run_job

log = logging.getLogger("PlayLog.daemon")


# ---------------------------------------------------------------------------
# JOB DEFINITIONS
# ---------------------------------------------------------------------------

def probe_job(store: PlaytimeStore, settings: Settings):
    """One polling tick over every played game."""
    poll_once(store, SteamClient(settings))


def pending_days(last_window: Optional[str], yesterday: date) -> List[date]:
    """Days from the one after the last segmented window through yesterday."""
    start = yesterday
    if last_window:
        start = min(date.fromisoformat(last_window) + timedelta(days=1), yesterday)
    return [start + timedelta(days=i) for i in range((yesterday - start).days + 1)]


def segmentation_job(store: PlaytimeStore, settings: Settings):
    """Segments every local day since the last segmented window, ending with yesterday."""
    clock = LocalClock.from_settings(settings)
    last_window = store.get_meta("last_segmented_window")
    days = pending_days(last_window, clock.today() - timedelta(days=1))
    if len(days) > 1:
        log.info(f"Catching up {len(days)} unsegmented days since {last_window}")
    for day in days:
        segment_window(store, day, settings, clock=clock)


# ---------------------------------------------------------------------------
# SCHEDULER
# ---------------------------------------------------------------------------

def build_scheduler(settings: Settings) -> BackgroundScheduler:
    # Fails here, at startup, if the configured zone is unusable.
    LocalClock.from_settings(settings)

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_job,
        trigger=IntervalTrigger(minutes=settings.poll_interval_minutes),
        args=[probe_job, settings],
        id="steam_probe",
        name="Steam Playtime Prober",
        max_instances=1,
        coalesce=True, # If multiple runs are due, only run the latest one
        misfire_grace_time=300,
    )
    scheduler.add_job(
        run_job,
        trigger=CronTrigger(hour=settings.segmentation_hour_local, minute=0, timezone=settings.local_tz),
        args=[segmentation_job, settings],
        id="daily_segmentation",
        name="Daily Session Segmentation",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600, # 1-hour grace if the host was asleep
    )
    return scheduler


def main(settings: Settings | None = None) -> None:
    settings = settings or Settings()
    logging.getLogger("apscheduler.scheduler").setLevel(logging.WARNING)
    logging.getLogger("apscheduler.executors.default").setLevel(logging.WARNING)

    log.info("--- Starting PlayLog Daemon ---")
    scheduler = build_scheduler(settings)
    scheduler.start()
    log.info("Scheduler initialised with %d job(s)", len(scheduler.get_jobs()))

    # Initial probe so the watermarks exist before the first interval elapses.
    run_job(probe_job, settings)

    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        log.info("Shutting down scheduler…")
        scheduler.shutdown()
        log.info("PlayLog Daemon stopped.")


if __name__ == "__main__":
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-25s | %(message)s",
        level=logging.INFO,
        stream=sys.stdout,
    )
    main()
