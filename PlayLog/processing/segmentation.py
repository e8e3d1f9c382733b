"""
Block snapping and session merging.

A poll run at time T reports on the block that *ends* at the next block
boundary at or after T. Blocks of one game are merged into sessions while
the gap between a session's end and the next block's start stays within the
tolerance. Everything here is pure and works on UTC instants only.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from PlayLog.models import Probe, TimeBlock

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_BLOCK_MINUTES = 30
DEFAULT_MERGE_GAP_MINUTES = 90


def snap_to_block(ts: datetime, block_minutes: int = DEFAULT_BLOCK_MINUTES) -> TimeBlock:
    """Maps a check timestamp to the block ending at ts rounded up to a boundary."""
    if ts.tzinfo is None:
        raise ValueError(f"Cannot snap naive datetime {ts!r}")
    size = timedelta(minutes=block_minutes)
    ts = ts.astimezone(timezone.utc)
    past_boundary = (ts - EPOCH) % size
    end = ts if not past_boundary else ts - past_boundary + size
    return TimeBlock(start=end - size, end=end)


def group_probes(probes: Iterable[Probe]) -> Dict[str, List[Probe]]:
    """
    Groups probes by game, each list in ascending check_time order.
    sorted() is stable, so equal timestamps keep their input order.
    """
    grouped: Dict[str, List[Probe]] = defaultdict(list)
    for p in probes:
        grouped[p.game_id].append(p)
    return {game_id: sorted(items, key=lambda p: p.check_time) for game_id, items in grouped.items()}


def distinct_blocks(probes: Iterable[Probe], block_minutes: int = DEFAULT_BLOCK_MINUTES) -> List[TimeBlock]:
    """Snapped blocks of the probes that carry play signal, deduplicated and in time order."""
    blocks = {snap_to_block(p.check_time, block_minutes) for p in probes if p.delta_minutes > 0}
    return sorted(blocks, key=lambda b: (b.start, b.end))


@dataclass(frozen=True)
class SessionInterval:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class MergeState:
    """Fold state: the closed sessions so far plus the open one, if any."""
    closed: Tuple[SessionInterval, ...] = ()
    current: Optional[SessionInterval] = None


def merge_step(state: MergeState, block: TimeBlock, max_gap: timedelta) -> MergeState:
    if state.current is None:
        return MergeState(state.closed, SessionInterval(block.start, block.end))

    gap = block.start - state.current.end
    if gap <= max_gap:
        # Overlapping or duplicate blocks land here too and never extend the end backwards.
        extended = SessionInterval(state.current.start, max(state.current.end, block.end))
        return MergeState(state.closed, extended)

    return MergeState(state.closed + (state.current,), SessionInterval(block.start, block.end))


def close_all(state: MergeState) -> List[SessionInterval]:
    if state.current is None:
        return list(state.closed)
    return list(state.closed + (state.current,))


def merge_blocks(
    blocks: Sequence[TimeBlock],
    merge_gap_minutes: int = DEFAULT_MERGE_GAP_MINUTES,
) -> List[SessionInterval]:
    """Merges time-ordered blocks of one game into non-overlapping sessions."""
    max_gap = timedelta(minutes=merge_gap_minutes)
    final = reduce(lambda state, block: merge_step(state, block, max_gap), blocks, MergeState())
    return close_all(final)


def segment_game(
    probes: Sequence[Probe],
    block_minutes: int = DEFAULT_BLOCK_MINUTES,
    merge_gap_minutes: int = DEFAULT_MERGE_GAP_MINUTES,
) -> List[Tuple[SessionInterval, int]]:
    """
    Sessions for a single game's probes, each paired with the number of
    contributing probes.
    """
    ordered = sorted(probes, key=lambda p: p.check_time)
    blocks = distinct_blocks(ordered, block_minutes)
    intervals = merge_blocks(blocks, merge_gap_minutes)

    starts = [snap_to_block(p.check_time, block_minutes).start for p in ordered if p.delta_minutes > 0]
    return [
        (interval, sum(1 for s in starts if interval.start <= s < interval.end))
        for interval in intervals
    ]
