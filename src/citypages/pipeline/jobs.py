"""Job lifecycle — create, read and finalize research job records.

Only this module writes a job's status. A job starts in "processing" and
moves exactly once to "completed" or "failed".
"""

import logging
from datetime import datetime, timezone

from citypages.config import settings
from citypages.core.errors import NotFoundError, PersistenceError
from citypages.core.types import (
    CITIES_TABLE,
    COMPLETE_PROGRESS,
    JOBS_TABLE,
    City,
    JobStatus,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobLifecycleManager:
    def __init__(self, store, finalize_retries: int | None = None):
        self.store = store
        self.finalize_retries = settings.finalize_retries if finalize_retries is None else finalize_retries

    async def get_city(self, city_id: str) -> City:
        record = await self.store.fetch_by_id(CITIES_TABLE, city_id)
        if record is None:
            raise NotFoundError("City not found")
        return City.from_record(record)

    async def get_job(self, job_id: str) -> dict:
        record = await self.store.fetch_by_id(JOBS_TABLE, job_id)
        if record is None:
            raise NotFoundError("Job not found")
        return record

    async def create_job(self, city_id: str) -> tuple[str, City]:
        """Insert a processing job for a city.

        Returns the new job id and the resolved city.

        Raises:
            NotFoundError: the city does not exist (no job is created).
            PersistenceError: the city lookup or the insert failed.
        """
        city = await self.get_city(city_id)
        job = await self.store.insert(JOBS_TABLE, {
            "city_id": city.id,
            "status": JobStatus.PROCESSING.value,
            "progress": 0,
            "current_step": "Starting...",
            "started_at": _now(),
            "results_json": {"sections": {}},
        })
        job_id = str(job["id"])
        logger.info(
            "Job created for %s, %s", city.city, city.state_code,
            extra={"job_id": job_id, "city_id": city.id},
        )
        return job_id, city

    async def finalize_success(self, job_id: str, pages: list[dict], sections: dict) -> None:
        await self._finalize(job_id, {
            "status": JobStatus.COMPLETED.value,
            "progress": COMPLETE_PROGRESS,
            "current_step": "Complete!",
            "completed_at": _now(),
            "results_json": {"pages": pages, "sections": sections},
        })
        logger.info("Job complete, generated %d pages", len(pages))

    async def finalize_failure(self, job_id: str, error: BaseException) -> None:
        """Mark a job failed. Progress and results are left as they were."""
        await self._finalize(job_id, {
            "status": JobStatus.FAILED.value,
            "error_message": str(error) or type(error).__name__,
            "completed_at": _now(),
        })
        logger.info("Job marked failed: %s", error)

    async def _finalize(self, job_id: str, values: dict) -> None:
        """Write a terminal state, retrying before giving up loudly.

        A lost terminal write leaves the job stuck in "processing" forever, so
        the final failure is logged at CRITICAL and re-raised. A write that matches
        no record raises NotFoundError instead of passing for success.
        """
        attempts = self.finalize_retries + 1
        for attempt in range(attempts):
            try:
                matched = await self.store.update_by_id(JOBS_TABLE, job_id, values)
            except PersistenceError as e:
                if attempt + 1 < attempts:
                    logger.warning(
                        "Finalize write failed for job %s (attempt %d/%d): %s",
                        job_id, attempt + 1, attempts, e,
                    )
                    continue
                logger.critical("Job %s could not be finalized as %s: %s", job_id, values["status"], e)
                raise
            if not matched:
                logger.critical("Job %s vanished before it could be finalized as %s", job_id, values["status"])
                raise NotFoundError(f"Job {job_id} not found")
            return
