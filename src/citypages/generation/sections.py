"""Section generators — prompt builders and payload shapes per content section.

Each section is a prompt template keyed by section key, the shape the model is
told to answer with, and a pydantic model that checks the answer has that
shape. Payloads are stored in the job's sections map exactly as returned by
the model (camelCase keys), since that is what the dashboard reads.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from citypages.core.errors import PayloadShapeError
from citypages.core.types import City, SectionSpec
from citypages.generation.extraction import ExtractionClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload shapes
# ---------------------------------------------------------------------------

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    word_count: int = Field(0, alias="wordCount")


class ContentPayload(_Payload):
    content: str


class AreasPayload(ContentPayload):
    neighborhoods: list[str] = []


class FaqItem(BaseModel):
    question: str
    answer: str


class FaqPayload(_Payload):
    faqs: list[FaqItem]


class FaqCtaPayload(FaqPayload):
    cta: str = ""


PAYLOAD_SHAPES: dict[str, type[_Payload]] = {
    "hero_services": ContentPayload,
    "areas_whychoose": AreasPayload,
    "pricing_process": ContentPayload,
    "faqs_part1": FaqPayload,
    "faqs_part2": FaqPayload,
    "testimonials_cta": ContentPayload,
    "intro_projects": ContentPayload,
    "service_details": ContentPayload,
    "faqs_cta": FaqCtaPayload,
}


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

MAIN_PROMPTS: dict[str, str] = {
    "hero_services": """Write EXACTLY 1,200 words for a dumpster rental landing page in {city}, {state}.

Include:
1. Compelling hero section (3 paragraphs) emphasizing local expertise
2. Comprehensive service breakdown (5-6 paragraphs): residential, commercial, construction, roofing, renovation, special waste

Return ONLY valid JSON:
{{"content": "the full 1,200 word text", "wordCount": 1200}}""",

    "areas_whychoose": """Write EXACTLY 1,000 words about service areas and value proposition for {city}, {state}.

Include:
1. Service Areas (2-3 paragraphs): List 4-6 real neighborhoods in {city}
2. Why Choose Us (3-4 paragraphs): local knowledge, fast delivery, transparent pricing, professional service

Return ONLY valid JSON:
{{"content": "the full 1,000 word text", "neighborhoods": ["Area1", "Area2", "Area3", "Area4", "Area5", "Area6"], "wordCount": 1000}}""",

    "pricing_process": """Write EXACTLY 700 words about pricing and process for {city}, {state}.

Include pricing guide (2 paragraphs) and how it works (3 paragraphs).

Return ONLY valid JSON:
{{"content": "the full 700 word text", "wordCount": 700}}""",

    "faqs_part1": """Write EXACTLY 10 FAQs with detailed answers (total 1,000 words) for {city}, {state}.

Topics: cost, permits, regulations, rental duration, pricing, fees, sizes, delivery speed, extensions, discounts

Each answer 80-120 words.

Return ONLY valid JSON:
{{"faqs": [{{"question": "...", "answer": "..."}}], "wordCount": 1000}}""",

    "faqs_part2": """Write EXACTLY 10 FAQs with detailed answers (total 1,000 words) for {city}, {state}.

Topics: accepted items, prohibited items, weight limits, street placement, size selection, dumpster differences, neighborhood delivery, booking, date changes, waste hauling

Return ONLY valid JSON:
{{"faqs": [{{"question": "...", "answer": "..."}}], "wordCount": 1000}}""",

    "testimonials_cta": """Write EXACTLY 500 words for closing section of {city}, {state} dumpster rental page.

Include testimonials section and final CTA.

Return ONLY valid JSON:
{{"content": "the full 500 word text", "wordCount": 500}}""",
}

NEIGHBORHOOD_PROMPTS: dict[str, str] = {
    "intro_projects": """Write EXACTLY 800 words introducing dumpster rental in {neighborhood}, {city}, {state}.

Cover what makes the neighborhood distinct and the kinds of projects residents and businesses take on there.

Return ONLY valid JSON:
{{"content": "the full 800 word text", "wordCount": 800}}""",

    "service_details": """Write EXACTLY 600 words about service details for {neighborhood}, {city}, {state}.

Return ONLY valid JSON:
{{"content": "the full 600 word text", "wordCount": 600}}""",

    "faqs_cta": """Write EXACTLY 10 FAQs (total 700 words) + CTA (100 words) for {neighborhood}, {city}, {state}.

Return ONLY valid JSON:
{{"faqs": [{{"question": "...", "answer": "..."}}], "cta": "cta text", "wordCount": 800}}""",
}


def build_main_prompt(city: City, key: str) -> str:
    return MAIN_PROMPTS[key].format(city=city.city, state=city.state_code)


def build_neighborhood_prompt(city: City, neighborhood: str, key: str) -> str:
    return NEIGHBORHOOD_PROMPTS[key].format(
        neighborhood=neighborhood, city=city.city, state=city.state_code,
    )


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------

def validate_payload(key: str, payload: dict) -> dict:
    """Check a raw payload against its section's shape.

    Returns the payload as stored in the job's sections map. Unknown extra
    keys the model adds are kept; a missing wordCount becomes 0.

    Raises:
        PayloadShapeError: required fields are missing or have the wrong type.
    """
    shape = PAYLOAD_SHAPES[key]
    try:
        parsed = shape.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"]) or "payload"
        raise PayloadShapeError(f"Section {key} payload invalid at {loc}: {first['msg']}") from e
    return parsed.model_dump(by_alias=True)


async def generate_main_section(client: ExtractionClient, city: City, spec: SectionSpec) -> dict:
    """Generate one main-page section for a city."""
    prompt = build_main_prompt(city, spec.key)
    payload = await client.extract(prompt, spec.tokens, name=spec.key)
    return validate_payload(spec.key, payload)


async def generate_neighborhood_section(
    client: ExtractionClient,
    city: City,
    neighborhood: str,
    spec: SectionSpec,
) -> dict:
    """Generate one section of a neighborhood page."""
    prompt = build_neighborhood_prompt(city, neighborhood, spec.key)
    payload = await client.extract(prompt, spec.tokens, name=f"{neighborhood}_{spec.key}")
    return validate_payload(spec.key, payload)
