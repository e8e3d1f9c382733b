from datetime import datetime, timedelta, timezone

import pytest

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore
from PlayLog.models import PlaySession, Probe
from PlayLog.processing.clock import LocalClock


def utc(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    return Settings(local_tz="America/New_York", db_path=tmp_path / "playlog.db", segmentation_workers=2)


@pytest.fixture
def clock():
    return LocalClock("America/New_York")


@pytest.fixture
def store():
    s = PlaytimeStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture
def make_probe():
    def _make(ts: str, game_id: str = "570", delta: int = 30, game_name: str = "Dota 2") -> Probe:
        return Probe(game_id=game_id, game_name=game_name, check_time=utc(ts), delta_minutes=delta)
    return _make


@pytest.fixture
def make_session(clock):
    """Builds a persisted-shape PlaySession from a UTC start and a length in minutes."""
    def _make(start: str, minutes: int = 30, game_id: str = "570", game_name: str = "Dota 2",
              window_id: str | None = None, ordinal: int = 1) -> PlaySession:
        start_utc = utc(start)
        end_utc = start_utc + timedelta(minutes=minutes)
        local_start = clock.to_local(start_utc)
        window_id = window_id or local_start.date.isoformat()
        return PlaySession(
            record_id=f"DAILY_{window_id}_{game_id}_PERIOD_{ordinal}",
            window_id=window_id,
            game_id=game_id,
            game_name=game_name,
            local_date=local_start.date,
            start_utc=start_utc,
            end_utc=end_utc,
            start_local=local_start.local,
            end_local=clock.to_local(end_utc).local,
            duration_minutes=minutes,
            block_count=minutes // 30,
            probe_count=minutes // 30,
            played_blocks=minutes // 30,
        )
    return _make
