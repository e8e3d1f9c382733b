"""
Playtime totals over finalized sessions.

Pure summation and filtering by local date; no segmentation happens here.
Malformed date filters yield an empty result instead of an error so the
reporting surface stays usable with bad query parameters.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Union

import polars as pl

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore
from PlayLog.models import GamePlaytime, PlaySession, PlaytimeTotals
from PlayLog.processing.clock import LocalClock

log = logging.getLogger(__name__)

DateLike = Union[date, str, None]

PERIOD_DAYS = {"week": 7, "month": 30}

SESSION_FRAME_SCHEMA = {
    "game_id": pl.Utf8,
    "game_name": pl.Utf8,
    "duration_minutes": pl.Int64,
}


def parse_date(value: DateLike) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _games_breakdown(sessions: List[PlaySession]) -> List[GamePlaytime]:
    if not sessions:
        return []
    df = pl.DataFrame(
        [{"game_id": s.game_id, "game_name": s.game_name, "duration_minutes": s.duration_minutes} for s in sessions],
        schema=SESSION_FRAME_SCHEMA,
    )
    per_game = (
        df.group_by("game_id")
          .agg([
              pl.col("game_name").last(),
              pl.col("duration_minutes").sum().alias("total_minutes"),
              pl.len().alias("session_count"),
          ])
          .sort(["total_minutes", "game_id"], descending=[True, False])
    )
    return [GamePlaytime(**row) for row in per_game.iter_rows(named=True)]


def build_totals(label: str, sessions: List[PlaySession]) -> PlaytimeTotals:
    ordered = sorted(sessions, key=lambda s: (s.start_utc, s.record_id))
    total_minutes = sum(s.duration_minutes for s in ordered)
    return PlaytimeTotals(
        label=label,
        total_minutes=total_minutes,
        total_hours=round(total_minutes / 60, 1),
        session_count=len(ordered),
        sessions=ordered,
        games=_games_breakdown(ordered),
    )


def daily_total(store: PlaytimeStore, local_date: DateLike) -> PlaytimeTotals:
    day = parse_date(local_date)
    if day is None:
        log.warning(f"Unparseable date filter {local_date!r}; returning empty totals")
        return PlaytimeTotals(label=str(local_date or ""))
    return build_totals(day.isoformat(), store.scan_sessions(day, day))


def range_total(store: PlaytimeStore, start: DateLike, end: DateLike) -> PlaytimeTotals:
    """Totals over an inclusive local-date range."""
    start_day, end_day = parse_date(start), parse_date(end)
    if start_day is None or end_day is None:
        log.warning(f"Unparseable range filter {start!r} to {end!r}; returning empty totals")
        return PlaytimeTotals(label=f"{start or ''} to {end or ''}")
    label = f"{start_day.isoformat()} to {end_day.isoformat()}"
    if start_day > end_day:
        return PlaytimeTotals(label=label)
    return build_totals(label, store.scan_sessions(start_day, end_day))


def period_total(store: PlaytimeStore, period: str, today: Optional[date] = None) -> PlaytimeTotals:
    """Trailing 'week' (7 days) or 'month' (30 days) ending today in the configured zone."""
    today = today or LocalClock.from_settings(Settings()).today()
    days = PERIOD_DAYS.get((period or "").lower())
    if days is None:
        log.warning(f"Unknown period {period!r}; returning empty totals")
        return PlaytimeTotals(label=str(period or ""))
    return range_total(store, today - timedelta(days=days), today)
