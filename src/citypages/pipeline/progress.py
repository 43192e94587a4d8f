"""Progress tracker — best-effort percentage and step label writes for a job."""

import logging

from citypages.core.errors import PersistenceError
from citypages.core.types import JOBS_TABLE

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Writes progress checkpoints to the job record.

    A failed write is logged and dropped. Progress is a status signal for the
    dashboard; losing one update must not abort a job that is otherwise fine.
    """

    def __init__(self, store):
        self.store = store

    async def report(self, job_id: str, progress: float, step: str) -> None:
        value = round(progress)
        try:
            matched = await self.store.update_by_id(JOBS_TABLE, job_id, {"progress": value, "current_step": step})
        except PersistenceError as e:
            logger.warning("Progress update failed for job %s: %s", job_id, e, extra={"progress": value})
            return
        if not matched:
            logger.warning("Progress update for job %s matched no record", job_id, extra={"progress": value})
            return
        logger.info("%s (%d%%)", step, value, extra={"progress": value, "step": step})
