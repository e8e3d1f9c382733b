import logging

from PlayLog.config import Settings
from PlayLog.database.store import PlaytimeStore

log = logging.getLogger(__name__)


def run_job(job_fn, settings: Settings, *args, **kwargs) -> bool:
    """Opens a dedicated store for one job and logs its outcome."""
    store = None
    job_name = job_fn.__name__
    try:
        store = PlaytimeStore.open(settings.db_path)
        log.info(f"JOB_START: {job_name}")
        job_fn(store, settings, *args, **kwargs)
        log.info(f"JOB_SUCCESS: {job_name}")
        return True
    except Exception:
        # Reported to the scheduler loop as a failed run; the next tick retries.
        log.error(f"JOB_FAILURE: {job_name}", exc_info=True)
        return False
    finally:
        if store:
            store.close()
