"""
UTC <-> local conversion for the configured target zone.

Everything that needs a local calendar date goes through LocalClock so the
segmentation logic stays free of timezone handling and can be tested with a
stand-in clock.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PlayLog.config import Settings
from PlayLog.errors import TimezoneConfigError

log = logging.getLogger(__name__)


class LocalTime(NamedTuple):
    local: datetime
    date: date
    offset: timedelta


class LocalClock:
    def __init__(self, tz_name: str):
        # No fallback to UTC: a wrong zone would silently shift every local date.
        try:
            self.tz = ZoneInfo(tz_name)
        except ZoneInfoNotFoundError as e:
            raise TimezoneConfigError(tz_name, "not found in the timezone database") from e
        except (ValueError, TypeError, OSError) as e:
            raise TimezoneConfigError(tz_name, str(e)) from e
        self.tz_name = tz_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalClock":
        return cls(settings.local_tz)

    def to_local(self, instant: datetime) -> LocalTime:
        if instant.tzinfo is None:
            raise ValueError(f"Refusing to localise naive datetime {instant!r}; expected an aware UTC instant")
        local = instant.astimezone(self.tz)
        return LocalTime(local=local, date=local.date(), offset=local.utcoffset())

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """UTC bounds of a local calendar day (23 or 25 hours long on DST days)."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def today(self) -> date:
        return datetime.now(timezone.utc).astimezone(self.tz).date()

    def __repr__(self) -> str:
        return f"LocalClock({self.tz_name!r})"
