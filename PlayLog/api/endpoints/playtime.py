from typing import Optional

from fastapi import APIRouter, Query

from PlayLog.api.deps import ClockDep, StoreDep
from PlayLog.models import PlaytimeTotals
from PlayLog.summary.playtime import daily_total, period_total, range_total

router = APIRouter()

# Dates are taken as plain strings: a malformed filter yields the empty
# totals shape with 200, never a validation error.


@router.get("/", response_model=PlaytimeTotals)
def read_playtime(
    store: StoreDep,
    clock: ClockDep,
    date: Optional[str] = Query(None, description="Local date in YYYY-MM-DD format."),
    start: Optional[str] = Query(None, description="Range start (inclusive), YYYY-MM-DD."),
    end: Optional[str] = Query(None, description="Range end (inclusive), YYYY-MM-DD."),
    period: Optional[str] = Query(None, description="'week' or 'month' ending today."),
):
    if date:
        return daily_total(store, date)
    if start and end:
        return range_total(store, start, end)
    if period:
        return period_total(store, period, clock.today())
    return daily_total(store, clock.today())


@router.get("/day/{date_string}", response_model=PlaytimeTotals)
def read_day_playtime(date_string: str, store: StoreDep):
    return daily_total(store, date_string)


@router.get("/range", response_model=PlaytimeTotals)
def read_range_playtime(
    store: StoreDep,
    start: str = Query("", description="Range start (inclusive), YYYY-MM-DD."),
    end: str = Query("", description="Range end (inclusive), YYYY-MM-DD."),
):
    return range_total(store, start, end)
