"""
Delta prober.

Turns the absolute, monotonic upstream counter into incremental probes.
The watermark update is a pure function; `probe` and `poll_once` apply it
against the store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from PlayLog.database.store import PlaytimeStore
from PlayLog.errors import PlayLogError, UpstreamError
from PlayLog.ingestion.steam import SteamClient
from PlayLog.models import GameCounter, LatestPointer, Probe

log = logging.getLogger(__name__)


class WatermarkUpdate(NamedTuple):
    pointer: LatestPointer
    probe: Optional[Probe]


def advance_watermark(
    pointer: Optional[LatestPointer],
    counter: GameCounter,
    now: datetime,
) -> WatermarkUpdate:
    """
    Returns the new watermark for a game and the probe to emit, if any.

    First observation only initialises the watermark. A counter lower than the
    watermark is a non-event: no probe, and the watermark keeps the max seen.
    """
    if pointer is None:
        new_pointer = LatestPointer(
            game_id=counter.game_id,
            game_name=counter.game_name,
            cumulative_minutes=counter.cumulative_minutes,
            last_check_time=now,
        )
        return WatermarkUpdate(new_pointer, None)

    delta = counter.cumulative_minutes - pointer.cumulative_minutes
    new_pointer = LatestPointer(
        game_id=counter.game_id,
        game_name=counter.game_name,
        cumulative_minutes=max(counter.cumulative_minutes, pointer.cumulative_minutes),
        last_check_time=now,
    )
    if delta <= 0:
        return WatermarkUpdate(new_pointer, None)

    emitted = Probe(
        game_id=counter.game_id,
        game_name=counter.game_name,
        check_time=now,
        delta_minutes=delta,
        cumulative_minutes=counter.cumulative_minutes,
    )
    return WatermarkUpdate(new_pointer, emitted)


def probe(store: PlaytimeStore, counter: GameCounter, now: datetime) -> Optional[Probe]:
    """Applies one reading to the store. Always writes the watermark."""
    current = store.get_latest(counter.game_id)
    update = advance_watermark(current, counter, now)

    if current is None:
        log.info(f"First time tracking {counter.game_name} ({counter.game_id}) at {counter.cumulative_minutes} min")
    elif counter.cumulative_minutes < current.cumulative_minutes:
        log.warning(
            f"{counter.game_name}: counter regressed from {current.cumulative_minutes} "
            f"to {counter.cumulative_minutes} min; treating as no activity"
        )

    with store.transaction():
        if update.probe is not None:
            store.put_probe(update.probe)
        store.put_latest(update.pointer)
    if update.probe is not None:
        log.info(f"{counter.game_name}: +{update.probe.delta_minutes} minutes")
    return update.probe


@dataclass
class PollResult:
    checked_at: datetime
    games_seen: int = 0
    games_updated: int = 0
    games_failed: int = 0
    probes: List[Probe] = field(default_factory=list)


def poll_once(store: PlaytimeStore, client: SteamClient, now: datetime | None = None) -> PollResult:
    """
    One polling cycle over every played game.

    If the upstream read fails nothing is written and UpstreamError propagates.
    A failure for one game is logged and does not stop the others.
    """
    now = now or datetime.now(timezone.utc)
    try:
        counters = client.fetch_owned_games()
    except UpstreamError as e:
        log.error(f"Skipping poll cycle, upstream read failed: {e}", exc_info=True)
        raise

    result = PollResult(checked_at=now)
    for counter in counters:
        if counter.cumulative_minutes <= 0:
            continue # Never played
        result.games_seen += 1
        try:
            emitted = probe(store, counter, now)
        except PlayLogError as e:
            result.games_failed += 1
            log.error(f"Probe failed for {counter.game_name} ({counter.game_id}): {e}", exc_info=True)
            continue
        if emitted is not None:
            result.games_updated += 1
            result.probes.append(emitted)

    store.set_meta("last_poll_ts", now.isoformat())
    log.info(
        f"Updated {result.games_updated} of {result.games_seen} games with playtime changes"
        + (f" ({result.games_failed} failed)" if result.games_failed else "")
    )
    return result
