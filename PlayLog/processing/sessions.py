"""
Segmentation runs over a processing window (one local calendar day).

Reads every probe of the window, segments each game independently and
upserts the resulting PlaySession records under keys derived from
(window, game, ordinal), so re-running a window never duplicates rows.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore
from PlayLog.errors import SegmentationError, StoreError
from PlayLog.models import PlaySession, Probe
from PlayLog.processing.clock import LocalClock
from PlayLog.processing.segmentation import distinct_blocks, group_probes, segment_game, snap_to_block

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingWindow:
    window_id: str
    day: date
    start_utc: datetime
    end_utc: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start_utc <= instant < self.end_utc


@dataclass
class SegmentationResult:
    window_id: str
    sessions: List[PlaySession] = field(default_factory=list)
    minutes_by_game: Dict[str, int] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def total_minutes(self) -> int:
        return sum(self.minutes_by_game.values())


def window_for_day(day: date, clock: LocalClock) -> ProcessingWindow:
    start_utc, end_utc = clock.day_bounds(day)
    return ProcessingWindow(window_id=day.isoformat(), day=day, start_utc=start_utc, end_utc=end_utc)


def session_record_id(window_id: str, game_id: str, ordinal: int) -> str:
    return f"DAILY_{window_id}_{game_id}_PERIOD_{ordinal}"


def _sessions_for_game(
    window: ProcessingWindow,
    game_probes: Sequence[Probe],
    clock: LocalClock,
    settings: Settings,
) -> List[PlaySession]:
    game_id = game_probes[0].game_id
    game_name = game_probes[-1].game_name

    played = distinct_blocks(game_probes, settings.block_minutes)
    sessions = []
    segments = segment_game(game_probes, settings.block_minutes, settings.merge_gap_minutes)
    for ordinal, (interval, probe_count) in enumerate(segments, start=1):
        start = clock.to_local(interval.start)
        end = clock.to_local(interval.end)
        sessions.append(PlaySession(
            record_id=session_record_id(window.window_id, game_id, ordinal),
            window_id=window.window_id,
            game_id=game_id,
            game_name=game_name,
            local_date=start.date,
            start_utc=interval.start,
            end_utc=interval.end,
            start_local=start.local,
            end_local=end.local,
            duration_minutes=interval.minutes,
            block_count=interval.minutes // settings.block_minutes,
            probe_count=probe_count,
            played_blocks=sum(1 for b in played if interval.start <= b.start < interval.end),
        ))
    return sessions


def segment_probes(
    probes: Sequence[Probe],
    window: ProcessingWindow,
    clock: LocalClock,
    settings: Settings,
) -> List[PlaySession]:
    """
    Pure segmentation of one window's probes.

    A probe belongs to the window containing the start of its snapped block,
    so every session of a window starts inside it. Output is ordered by game id
    then start time regardless of input order.
    """
    in_window = [
        p for p in probes
        if p.delta_minutes > 0 and window.contains(snap_to_block(p.check_time, settings.block_minutes).start)
    ]
    grouped = group_probes(in_window)
    game_ids = sorted(grouped)
    if not game_ids:
        return []

    workers = max(1, min(settings.segmentation_workers, len(game_ids)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        per_game = list(executor.map(
            lambda gid: _sessions_for_game(window, grouped[gid], clock, settings),
            game_ids,
        ))
    return [s for sessions in per_game for s in sessions]


def segment_window(
    store: PlaytimeStore,
    day: date,
    settings: Settings,
    clock: Optional[LocalClock] = None,
    dry_run: bool = False,
) -> SegmentationResult:
    """
    Segments and persists one local day. All-or-nothing: a read or write
    failure raises SegmentationError and the whole window should be retried.
    A bad timezone raises TimezoneConfigError before anything is read.
    """
    clock = clock or LocalClock.from_settings(settings)
    window = window_for_day(day, clock)
    margin = timedelta(minutes=settings.block_minutes)

    log.info(f"Segmenting window {window.window_id} [{window.start_utc.isoformat()} -> {window.end_utc.isoformat()}]"
             f"{' [DRY RUN]' if dry_run else ''}")
    try:
        # Probes just past the window edge can still snap to a block that starts inside it.
        probes = store.scan_probes(window.start_utc - margin, window.end_utc + margin)
    except StoreError as e:
        raise SegmentationError(window.window_id, f"could not read probes: {e}") from e

    sessions = segment_probes(probes, window, clock, settings)

    result = SegmentationResult(window_id=window.window_id, sessions=sessions, dry_run=dry_run)
    names: Dict[str, str] = {}
    counts: Dict[str, int] = {}
    for s in sessions:
        result.minutes_by_game[s.game_id] = result.minutes_by_game.get(s.game_id, 0) + s.duration_minutes
        counts[s.game_id] = counts.get(s.game_id, 0) + 1
        names[s.game_id] = s.game_name
    for game_id, minutes in result.minutes_by_game.items():
        log.info(f"{'[DRY RUN] ' if dry_run else ''}{names[game_id]}: {minutes} minutes across {counts[game_id]} periods")

    if dry_run:
        for s in sessions:
            log.info(f"[DRY RUN] Would write: {s.model_dump_json()}")
        return result

    try:
        store.replace_window_sessions(window.window_id, sessions)
        store.set_meta("last_segmented_window", window.window_id)
    except StoreError as e:
        raise SegmentationError(window.window_id, f"could not persist sessions: {e}") from e

    log.info(f"Created {len(sessions)} period summaries for {window.window_id}")
    return result
