"""Tests for the content orchestrator — ordering, progress and failure policy."""

import logging

import pytest

from citypages.core.types import MAIN_SECTIONS, NEIGHBORHOOD_SECTIONS, City, normalize_neighborhoods
from citypages.generation.extraction import ExtractionClient
from citypages.observability.logging import current_job_id
from citypages.pipeline.jobs import JobLifecycleManager
from citypages.pipeline.orchestrator import ContentOrchestrator, neighborhood_checkpoint

CITY = City(id="c1", city="Springfield", state_code="IL")


async def _run(store, provider, neighborhoods):
    jobs = JobLifecycleManager(store)
    job_id, city = await jobs.create_job("c1")
    orchestrator = ContentOrchestrator(store, ExtractionClient(provider), jobs=jobs)
    pages = await orchestrator.run(job_id, city, neighborhoods)
    return job_id, pages


class TestNeighborhoodCheckpoint:
    @pytest.mark.parametrize("count", [1, 2, 3])
    def test_even_split(self, count):
        share = 50 / count
        for i in range(count):
            assert neighborhood_checkpoint(i, 0, count) == pytest.approx(50 + i * share)
            assert neighborhood_checkpoint(i, 1, count) - neighborhood_checkpoint(i, 0, count) == pytest.approx(share / 3)

    def test_two_neighborhoods(self):
        values = [neighborhood_checkpoint(i, j, 2) for i in range(2) for j in range(3)]
        assert [round(v) for v in values] == [50, 58, 67, 75, 83, 92]

    @pytest.mark.parametrize("count", [1, 2, 4, 7, 20])
    def test_never_above_assembly(self, count):
        values = [neighborhood_checkpoint(i, j, count) for i in range(count) for j in range(3)]
        assert max(values) <= 95
        assert values == sorted(values)


class TestSuccessfulRun:
    async def test_springfield_end_to_end(self, store, provider):
        job_id, pages = await _run(store, provider, ["Downtown", "Northside"])

        job = store.tables["research_jobs"][job_id]
        assert job["status"] == "completed"
        assert job["progress"] == 100
        assert len(pages) == 3
        assert pages[0]["title"] == "Dumpster Rental in Springfield, IL - Affordable Roll-Off Rentals"
        assert "Northside, Springfield" in pages[2]["title"]
        assert job["results_json"]["pages"] == pages

    async def test_sections_map_layout(self, store, provider):
        job_id, _ = await _run(store, provider, ["Downtown", "Northside"])

        sections = store.tables["research_jobs"][job_id]["results_json"]["sections"]
        assert set(sections) == {"main", "neighborhood_Downtown", "neighborhood_Northside"}
        assert list(sections["main"]) == [s.key for s in MAIN_SECTIONS]
        assert list(sections["neighborhood_Northside"]) == [s.key for s in NEIGHBORHOOD_SECTIONS]

    async def test_calls_are_sequential_in_fixed_order(self, store, provider):
        await _run(store, provider, ["Downtown", "Northside"])

        budgets = [c["max_tokens"] for c in provider.calls]
        expected = [s.tokens for s in MAIN_SECTIONS] + [s.tokens for s in NEIGHBORHOOD_SECTIONS] * 2
        assert budgets == expected
        assert "Downtown" in provider.calls[6]["prompt"]
        assert "Northside" in provider.calls[9]["prompt"]

    async def test_progress_is_non_decreasing(self, store, provider):
        job_id, _ = await _run(store, provider, ["Downtown", "Northside"])

        history = store.progress_history(job_id)
        assert history == sorted(history)
        assert history[:6] == [5, 15, 25, 35, 45, 50]
        assert history[-2:] == [95, 100]

    async def test_four_neighborhoods_stay_monotonic(self, store, provider):
        job_id, pages = await _run(store, provider, ["Downtown", "Northside", "Westside", "Eastside"])

        history = store.progress_history(job_id)
        assert history == sorted(history)
        assert history[-2:] == [95, 100]
        assert len(pages) == 5

    async def test_step_labels(self, store, provider):
        job_id, _ = await _run(store, provider, ["Downtown"])

        steps = [v["current_step"] for _, rid, v in store.updates if rid == job_id and "current_step" in v]
        assert steps[0] == "Main page: Hero & Services..."
        assert "Downtown: Intro & Projects..." in steps
        assert steps[-2:] == ["Assembling pages...", "Complete!"]

    async def test_progress_write_failures_do_not_abort(self, store, provider):
        store.fail_update = lambda values: "status" not in values
        job_id, pages = await _run(store, provider, ["Downtown"])

        job = store.tables["research_jobs"][job_id]
        assert job["status"] == "completed"
        assert job["progress"] == 100
        assert len(pages) == 2


class TestFailedRun:
    async def test_malformed_second_main_section(self, store, provider):
        def responder(prompt, max_tokens):
            if "service areas" in prompt:
                return "{not json}"
            return '{"content": "ok", "wordCount": 10}'

        provider.responder = responder
        job_id, pages = await _run(store, provider, ["Downtown"])

        job = store.tables["research_jobs"][job_id]
        assert pages is None
        assert job["status"] == "failed"
        assert job["error_message"].startswith("Malformed JSON in response")
        assert "pages" not in job["results_json"]
        # Stops at the failing section: the first completed at 5, the second
        # was announced at 15 and nothing ran after it.
        assert store.progress_history(job_id) == [5, 15]
        assert job["progress"] == 15
        assert len(provider.calls) == 2

    async def test_missing_payload_in_neighborhood(self, store, provider):
        def responder(prompt, max_tokens):
            if "service details for Downtown" in prompt:
                return "Sorry, I cannot do that."
            return '{"content": "ok", "faqs": [], "cta": "x", "wordCount": 10}'

        provider.responder = responder
        job_id, pages = await _run(store, provider, ["Downtown", "Northside"])

        job = store.tables["research_jobs"][job_id]
        assert pages is None
        assert job["status"] == "failed"
        assert job["error_message"] == "No JSON in response"
        assert job["progress"] == 58
        assert not any("Northside" in c["prompt"] for c in provider.calls)

    async def test_provider_exception_fails_job(self, store, provider):
        def responder(prompt, max_tokens):
            raise RuntimeError("quota exceeded")

        provider.responder = responder
        job_id, pages = await _run(store, provider, ["Downtown"])

        job = store.tables["research_jobs"][job_id]
        assert job["status"] == "failed"
        assert job["error_message"] == "quota exceeded"
        assert job["progress"] == 5


class TestNeighborhoodNames:
    async def test_duplicate_names_generate_one_page_each(self, store, provider):
        job_id, pages = await _run(store, provider, ["Downtown", " Downtown", "Northside", "Downtown"])

        assert [p.get("neighborhoodName") for p in pages[1:]] == ["Downtown", "Northside"]
        assert len(provider.calls) == len(MAIN_SECTIONS) + 2 * len(NEIGHBORHOOD_SECTIONS)
        # Two neighborhoods: bands of 25 points, not three of 16.7
        assert store.progress_history(job_id)[6:12] == [50, 58, 67, 75, 83, 92]

    def test_normalize_neighborhoods(self):
        assert normalize_neighborhoods([" Old Town ", "", "Lakeside", "Old Town"]) == ["Old Town", "Lakeside"]


class TestJobLogContext:
    async def test_log_lines_carry_job_id(self, store, provider, caplog):
        caplog.set_level(logging.INFO, logger="citypages")
        seen = []

        class Capture(logging.Handler):
            def emit(self, record):
                seen.append(current_job_id.get())

        jobs = JobLifecycleManager(store)
        job_id, city = await jobs.create_job("c1")
        orchestrator = ContentOrchestrator(store, ExtractionClient(provider), jobs=jobs)

        handler = Capture()
        logging.getLogger("citypages.pipeline").addHandler(handler)
        try:
            await orchestrator.run(job_id, city, ["Downtown"])
        finally:
            logging.getLogger("citypages.pipeline").removeHandler(handler)

        assert seen and set(seen) == {job_id}
        assert current_job_id.get() == ""
