"""citypages CLI — run a content generation job in the foreground."""

import asyncio
import logging
import sys

from citypages.config import settings
from citypages.core.types import normalize_neighborhoods
from citypages.observability.tracing import init_tracking


def main() -> None:
    """Generate pages for a city: citypages <city_id> [neighborhood ...]"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_tracking(settings.mlflow_tracking_uri, settings.mlflow_experiment_name)

    if len(sys.argv) < 2:
        print("Usage: citypages <city_id> [neighborhood ...]")
        print("  Example: citypages c1")
        print("  Example: citypages c1 Downtown Northside")
        sys.exit(1)

    city_id = sys.argv[1]
    neighborhoods = normalize_neighborhoods(sys.argv[2:]) or list(settings.default_neighborhoods)
    ok = asyncio.run(_generate(city_id, neighborhoods))
    sys.exit(0 if ok else 1)


async def _generate(city_id: str, neighborhoods: list[str]) -> bool:
    from citypages.core.errors import NotFoundError
    from citypages.generation.extraction import ExtractionClient
    from citypages.generation.provider import AnthropicProvider
    from citypages.pipeline.jobs import JobLifecycleManager
    from citypages.pipeline.orchestrator import ContentOrchestrator
    from citypages.storage.db import RecordStore, init_db

    await init_db()
    store = RecordStore()
    provider = AnthropicProvider()
    jobs = JobLifecycleManager(store)

    try:
        try:
            job_id, city = await jobs.create_job(city_id)
        except NotFoundError:
            print(f"City not found: {city_id}")
            return False

        print("\nContent Generation")
        print(f"{'=' * 50}")
        print(f"City:          {city.city}, {city.state_code}")
        print(f"Neighborhoods: {', '.join(neighborhoods)}")
        print(f"Job:           {job_id}\n")

        orchestrator = ContentOrchestrator(store, ExtractionClient(provider), jobs=jobs)
        pages = await orchestrator.run(job_id, city, neighborhoods)
    finally:
        await provider.aclose()

    if pages is None:
        job = await jobs.get_job(job_id)
        print(f"Job failed at {job.get('progress')}%: {job.get('error_message')}")
        return False

    print(f"{'─' * 50}")
    for page in pages:
        print(f"  [{page['type']:<12}] {page['title']}  ({page['wordCount']:,} words)")
    print(f"\nGenerated {len(pages)} pages.")
    return True
