from typing import Annotated, Iterator

from fastapi import Depends

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore
from PlayLog.processing.clock import LocalClock


def get_settings() -> Settings:
    return Settings()


def get_store(settings: Annotated[Settings, Depends(get_settings)]) -> Iterator[PlaytimeStore]:
    store = PlaytimeStore.open(settings.db_path)
    try:
        yield store
    finally:
        store.close()


def get_clock(settings: Annotated[Settings, Depends(get_settings)]) -> LocalClock:
    return LocalClock.from_settings(settings)


StoreDep = Annotated[PlaytimeStore, Depends(get_store)]
ClockDep = Annotated[LocalClock, Depends(get_clock)]
