"""Domain types for the content generation service.

All shared dataclasses and constants live here so the pipeline, storage and
API layers agree on one model of cities, jobs, sections and pages.
"""

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class City:
    """A city row from the record store. Read-only for the life of a job."""

    id: str
    city: str
    state_code: str

    @classmethod
    def from_record(cls, record: dict) -> "City":
        return cls(id=str(record["id"]), city=record["city"], state_code=record["state_code"])


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


CITIES_TABLE = "cities"
JOBS_TABLE = "research_jobs"


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SectionSpec:
    """One unit of generated content: its key, progress label, weight and token cap."""

    key: str
    label: str
    tokens: int
    progress: float = 0.0


# Main-page sections in generation order. progress is the checkpoint reported
# when the section starts; the last one lands on the job midpoint.
MAIN_SECTIONS: tuple[SectionSpec, ...] = (
    SectionSpec("hero_services", "Hero & Services", tokens=3000, progress=5),
    SectionSpec("areas_whychoose", "Areas & Why Choose Us", tokens=2500, progress=15),
    SectionSpec("pricing_process", "Pricing & Process", tokens=2000, progress=25),
    SectionSpec("faqs_part1", "FAQs Part 1", tokens=2500, progress=35),
    SectionSpec("faqs_part2", "FAQs Part 2", tokens=2500, progress=45),
    SectionSpec("testimonials_cta", "Testimonials & CTA", tokens=1500, progress=50),
)

# Repeated for every neighborhood. Checkpoints are computed from the
# neighborhood count, see pipeline.orchestrator.neighborhood_checkpoint().
NEIGHBORHOOD_SECTIONS: tuple[SectionSpec, ...] = (
    SectionSpec("intro_projects", "Intro & Projects", tokens=2000),
    SectionSpec("service_details", "Service Details", tokens=1500),
    SectionSpec("faqs_cta", "FAQs & CTA", tokens=2000),
)

NEIGHBORHOOD_BASE_PROGRESS = 50
ASSEMBLY_PROGRESS = 95
COMPLETE_PROGRESS = 100


def neighborhood_key(name: str) -> str:
    """Key of a neighborhood's section group in the job's sections map."""
    return f"neighborhood_{name}"


def normalize_neighborhoods(names) -> list[str]:
    """Strip names, drop blanks and duplicates, keep first-seen order.

    Each name becomes a section-group key, so duplicates would overwrite
    each other and produce repeated pages.
    """
    seen: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@dataclass
class MainPageContent:
    hero_services: str = ""
    areas_why_choose: str = ""
    neighborhoods: list[str] = field(default_factory=list)
    pricing_process: str = ""
    faqs_part1: list[dict] = field(default_factory=list)
    faqs_part2: list[dict] = field(default_factory=list)
    testimonials_cta: str = ""


@dataclass
class NeighborhoodPageContent:
    intro_projects: str = ""
    service_details: str = ""
    faqs: list[dict] = field(default_factory=list)
    cta: str = ""


@dataclass
class Page:
    """A fully assembled landing page (main city page or one neighborhood)."""

    type: str
    title: str
    meta_description: str
    h1: str
    content: MainPageContent | NeighborhoodPageContent
    word_count: int
    generated_at: str
    neighborhood_name: str | None = None
