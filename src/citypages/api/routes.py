"""API route handlers for content generation jobs.

POST /research — create a job and start generation in the background
GET  /research/{job_id} — job status, progress and (once done) results
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from citypages.api.deps import get_extraction_client, get_store
from citypages.api.schemas import (
    ErrorResponse,
    JobStatusResponse,
    ResearchRequest,
    ResearchStartedResponse,
)
from citypages.config import settings
from citypages.core.errors import NotFoundError, PersistenceError
from citypages.generation.extraction import ExtractionClient
from citypages.pipeline.jobs import JobLifecycleManager
from citypages.pipeline.orchestrator import ContentOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["research"])

# Strong references to running jobs; the event loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()


def _on_job_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("Background task %s was cancelled", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task %s crashed: %s", task.get_name(), exc, exc_info=exc)


def spawn_job(orchestrator: ContentOrchestrator, job_id: str, city, neighborhoods: list[str]) -> asyncio.Task:
    """Run a job as a detached task. The caller does not wait for it."""
    task = asyncio.create_task(
        orchestrator.run(job_id, city, neighborhoods), name=f"research-{job_id}",
    )
    _background_tasks.add(task)
    task.add_done_callback(_on_job_done)
    return task


@router.post(
    "/research",
    response_model=ResearchStartedResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse, "description": "Missing city id"},
        404: {"model": ErrorResponse, "description": "City not found"},
        500: {"model": ErrorResponse, "description": "Job could not be created"},
    },
)
async def start_research(
    request: ResearchRequest,
    store=Depends(get_store),
    client: ExtractionClient = Depends(get_extraction_client),
):
    """Create a research job for a city and start generating its pages."""
    if not request.city_id:
        raise HTTPException(status_code=400, detail="City ID required")

    logger.info("Starting research for city %s", request.city_id, extra={"city_id": request.city_id})
    jobs = JobLifecycleManager(store)
    try:
        job_id, city = await jobs.create_job(request.city_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="City not found")
    except PersistenceError as e:
        logger.error("Job creation failed for city %s: %s", request.city_id, e)
        raise HTTPException(status_code=500, detail="Failed to create job")

    neighborhoods = request.neighborhoods or list(settings.default_neighborhoods)
    spawn_job(ContentOrchestrator(store, client, jobs=jobs), job_id, city, neighborhoods)

    return ResearchStartedResponse(job_id=job_id)


@router.get(
    "/research/{job_id}",
    response_model=JobStatusResponse,
    response_model_by_alias=True,
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_research(job_id: str, store=Depends(get_store)):
    """Read a job's status. Results are filled in once the job completes."""
    try:
        job = await JobLifecycleManager(store).get_job(job_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except PersistenceError as e:
        logger.error("Job read failed for %s: %s", job_id, e)
        raise HTTPException(status_code=500, detail="Failed to read job")

    return JobStatusResponse(
        id=str(job["id"]),
        city_id=str(job["city_id"]),
        status=job["status"],
        progress=job.get("progress") or 0,
        current_step=job.get("current_step"),
        started_at=_iso(job.get("started_at")),
        completed_at=_iso(job.get("completed_at")),
        error_message=job.get("error_message"),
        results=job.get("results_json") or {},
    )


def _iso(value) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()
