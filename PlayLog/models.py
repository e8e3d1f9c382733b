from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def ensure_utc(v):
    """Coerce ISO strings and naive datetimes to aware UTC datetimes."""
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace('Z', '+00:00'))
    if isinstance(v, datetime):
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)
    raise ValueError("Invalid datetime format")


class GameCounter(BaseModel):
    """One upstream reading: the absolute minutes played for a game."""
    game_id: str
    game_name: str
    cumulative_minutes: int = Field(..., ge=0)


class Probe(BaseModel):
    """
    One polling observation with new play activity.
    Append-only; never updated after it is written.
    """
    model_config = ConfigDict(frozen=True)

    game_id: str
    game_name: str
    check_time: datetime = Field(..., description="UTC instant the counter was read")
    delta_minutes: int = Field(..., ge=0, description="Minutes accrued since the previous reading")
    cumulative_minutes: Optional[int] = Field(default=None, ge=0)

    @field_validator('check_time', mode='before')
    @classmethod
    def parse_datetime_utc(cls, v):
        return ensure_utc(v)

    @property
    def probe_id(self) -> str:
        return f"{self.check_time.isoformat()}_{self.game_id}"


class LatestPointer(BaseModel):
    """Per-game watermark of the last observed cumulative counter."""
    game_id: str
    game_name: str
    cumulative_minutes: int = Field(..., ge=0)
    last_check_time: datetime

    @field_validator('last_check_time', mode='before')
    @classmethod
    def parse_datetime_utc(cls, v):
        return ensure_utc(v)


class TimeBlock(BaseModel):
    """Canonical half-hour bucket a probe is snapped into. Never persisted."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def check_start_before_end(self):
        if self.start >= self.end:
            raise ValueError(f"Block end ({self.end}) must be after start ({self.start}).")
        return self


class PlaySession(BaseModel):
    """A finalized, merged run of blocks for one game."""
    record_id: str
    window_id: str
    game_id: str
    game_name: str
    local_date: date = Field(..., description="Local calendar date of the session start")
    start_utc: datetime
    end_utc: datetime
    start_local: datetime
    end_local: datetime
    duration_minutes: int = Field(..., ge=0)
    block_count: int = Field(..., ge=1, description="Blocks spanned from start to end, merged gaps included")
    played_blocks: int = Field(default=0, ge=0, description="Distinct blocks that carried play signal")
    probe_count: int = Field(default=0, ge=0)

    @field_validator('start_utc', 'end_utc', mode='before')
    @classmethod
    def parse_datetime_utc(cls, v):
        return ensure_utc(v)

    @field_validator('start_local', 'end_local', mode='before')
    @classmethod
    def require_offset(cls, v):
        if isinstance(v, str):
            v = datetime.fromisoformat(v)
        if isinstance(v, datetime) and v.tzinfo is None:
            raise ValueError("Local timestamps must carry their UTC offset")
        return v

    @model_validator(mode='after')
    def check_duration_matches_span(self):
        elapsed = int((self.end_utc - self.start_utc).total_seconds() // 60)
        if elapsed != self.duration_minutes:
            raise ValueError(
                f"duration_minutes ({self.duration_minutes}) must equal elapsed time ({elapsed}) "
                f"between {self.start_utc} and {self.end_utc}"
            )
        return self

    @property
    def utc_date(self) -> date:
        return self.start_utc.date()


class GamePlaytime(BaseModel):
    game_id: str
    game_name: str
    total_minutes: int = 0
    session_count: int = 0


class PlaytimeTotals(BaseModel):
    """Aggregate returned by the daily / range queries."""
    label: str
    total_minutes: int = 0
    total_hours: float = 0.0
    session_count: int = 0
    sessions: List[PlaySession] = Field(default_factory=list)
    games: List[GamePlaytime] = Field(default_factory=list)
