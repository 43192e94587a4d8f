"""Content orchestrator — runs every section of one job in a single forward pass.

Order of work for a job:
  1. Main-page sections, in MAIN_SECTIONS order, each at its fixed checkpoint
  2. For each neighborhood in order, its three NEIGHBORHOOD_SECTIONS
  3. Assembly at 95%, then the completed job is written with pages + sections

Sections run strictly one after another. Any failure before the final write
marks the job failed and stops; sections generated so far are dropped with
the in-memory run.
"""

import logging
import time

from citypages.core.types import (
    ASSEMBLY_PROGRESS,
    COMPLETE_PROGRESS,
    MAIN_SECTIONS,
    NEIGHBORHOOD_BASE_PROGRESS,
    NEIGHBORHOOD_SECTIONS,
    City,
    neighborhood_key,
    normalize_neighborhoods,
)
from citypages.generation.extraction import ExtractionClient
from citypages.generation.sections import generate_main_section, generate_neighborhood_section
from citypages.observability.logging import current_job_id
from citypages.pipeline.assembler import assemble_pages, page_to_dict
from citypages.pipeline.jobs import JobLifecycleManager
from citypages.pipeline.progress import ProgressTracker

logger = logging.getLogger(__name__)


def neighborhood_checkpoint(index: int, section_index: int, count: int) -> float:
    """Progress reported when a neighborhood section starts.

    The points between the main-page midpoint and 100 are split evenly across
    neighborhoods, and each neighborhood's share evenly across its sections.
    Capped at the assembly checkpoint so progress never steps backwards.
    """
    per_neighborhood = (COMPLETE_PROGRESS - NEIGHBORHOOD_BASE_PROGRESS) / count
    per_section = per_neighborhood / len(NEIGHBORHOOD_SECTIONS)
    value = NEIGHBORHOOD_BASE_PROGRESS + index * per_neighborhood + section_index * per_section
    return min(value, ASSEMBLY_PROGRESS)


class ContentOrchestrator:
    """Drives one job from first section to final page documents.

    The record store and extraction client are handed in so the API, the CLI
    and tests can all run the same pipeline against different backends.
    """

    def __init__(self, store, client: ExtractionClient, jobs: JobLifecycleManager | None = None):
        self.client = client
        self.jobs = jobs or JobLifecycleManager(store)
        self.tracker = ProgressTracker(store)

    async def run(self, job_id: str, city: City, neighborhoods: list[str]) -> list[dict] | None:
        """Generate, assemble and finalize a job.

        Returns the page documents on success, or None once the job has been
        marked failed. Errors writing the terminal state propagate.
        """
        token = current_job_id.set(job_id)
        try:
            return await self._run(job_id, city, normalize_neighborhoods(neighborhoods))
        finally:
            current_job_id.reset(token)

    async def _run(self, job_id: str, city: City, neighborhoods: list[str]) -> list[dict] | None:
        logger.info(
            "Starting content generation for %s, %s (%d neighborhoods)",
            city.city, city.state_code, len(neighborhoods),
            extra={"city_id": city.id},
        )
        t0 = time.monotonic()
        sections: dict[str, dict] = {}

        try:
            sections["main"] = {}
            for spec in MAIN_SECTIONS:
                await self.tracker.report(job_id, spec.progress, f"Main page: {spec.label}...")
                sections["main"][spec.key] = await self._timed(
                    spec.key, generate_main_section(self.client, city, spec),
                )

            for i, name in enumerate(neighborhoods):
                group = sections[neighborhood_key(name)] = {}
                for j, spec in enumerate(NEIGHBORHOOD_SECTIONS):
                    checkpoint = neighborhood_checkpoint(i, j, len(neighborhoods))
                    await self.tracker.report(job_id, checkpoint, f"{name}: {spec.label}...")
                    group[spec.key] = await self._timed(
                        f"{name}/{spec.key}",
                        generate_neighborhood_section(self.client, city, name, spec),
                    )

            await self.tracker.report(job_id, ASSEMBLY_PROGRESS, "Assembling pages...")
            pages = [page_to_dict(p) for p in assemble_pages(city, neighborhoods, sections)]
        except Exception as e:
            logger.exception("Generation failed for job %s", job_id)
            await self.jobs.finalize_failure(job_id, e)
            return None

        await self.jobs.finalize_success(job_id, pages, sections)
        elapsed = time.monotonic() - t0
        logger.info(
            "Job %s finished in %.1fs", job_id, elapsed,
            extra={"duration_ms": round(elapsed * 1000)},
        )
        return pages

    async def _timed(self, label: str, coro) -> dict:
        t0 = time.monotonic()
        payload = await coro
        logger.info(
            "%s complete (%s words)", label, payload.get("wordCount", 0),
            extra={"section": label, "duration_ms": round((time.monotonic() - t0) * 1000)},
        )
        return payload
