"""Page assembler — turns raw section payloads into final page documents.

Pure: the same city, neighborhoods and sections always give the same pages
(apart from generated_at). A missing section contributes empty content and
zero words, it never raises.
"""

from datetime import datetime, timezone

from citypages.core.types import (
    MAIN_SECTIONS,
    NEIGHBORHOOD_SECTIONS,
    City,
    MainPageContent,
    NeighborhoodPageContent,
    Page,
    neighborhood_key,
)


def _field(sections: dict, key: str, name: str, default):
    section = sections.get(key) or {}
    value = section.get(name)
    return default if value is None else value


def _word_count(sections: dict, keys) -> int:
    total = 0
    for key in keys:
        total += int(_field(sections, key, "wordCount", 0) or 0)
    return total


def build_main_page(city: City, sections: dict, generated_at: str) -> Page:
    place = f"{city.city}, {city.state_code}"
    content = MainPageContent(
        hero_services=_field(sections, "hero_services", "content", ""),
        areas_why_choose=_field(sections, "areas_whychoose", "content", ""),
        neighborhoods=list(_field(sections, "areas_whychoose", "neighborhoods", [])),
        pricing_process=_field(sections, "pricing_process", "content", ""),
        faqs_part1=list(_field(sections, "faqs_part1", "faqs", [])),
        faqs_part2=list(_field(sections, "faqs_part2", "faqs", [])),
        testimonials_cta=_field(sections, "testimonials_cta", "content", ""),
    )
    return Page(
        type="main",
        title=f"Dumpster Rental in {place} - Affordable Roll-Off Rentals",
        meta_description=f"Professional dumpster rental in {place}. Fast delivery, transparent pricing.",
        h1=f"Dumpster Rental in {place}",
        content=content,
        word_count=_word_count(sections, (s.key for s in MAIN_SECTIONS)),
        generated_at=generated_at,
    )


def build_neighborhood_page(city: City, neighborhood: str, sections: dict, generated_at: str) -> Page:
    place = f"{neighborhood}, {city.city}"
    content = NeighborhoodPageContent(
        intro_projects=_field(sections, "intro_projects", "content", ""),
        service_details=_field(sections, "service_details", "content", ""),
        faqs=list(_field(sections, "faqs_cta", "faqs", [])),
        cta=_field(sections, "faqs_cta", "cta", ""),
    )
    return Page(
        type="neighborhood",
        neighborhood_name=neighborhood,
        title=f"Dumpster Rental in {place}",
        meta_description=f"Dumpster rental in {place}. Same-day delivery available.",
        h1=f"Dumpster Rental in {place}",
        content=content,
        word_count=_word_count(sections, (s.key for s in NEIGHBORHOOD_SECTIONS)),
        generated_at=generated_at,
    )


def page_to_dict(page: Page) -> dict:
    """Serialize a Page to the JSON shape stored in results_json."""
    c = page.content
    if isinstance(c, MainPageContent):
        content = {
            "heroServices": c.hero_services,
            "areasWhyChoose": c.areas_why_choose,
            "neighborhoods": c.neighborhoods,
            "pricingProcess": c.pricing_process,
            "faqsPart1": c.faqs_part1,
            "faqsPart2": c.faqs_part2,
            "testimonialsCta": c.testimonials_cta,
        }
    else:
        content = {
            "introProjects": c.intro_projects,
            "serviceDetails": c.service_details,
            "faqs": c.faqs,
            "cta": c.cta,
        }

    out: dict = {"type": page.type}
    if page.neighborhood_name is not None:
        out["neighborhoodName"] = page.neighborhood_name
    out.update({
        "title": page.title,
        "metaDescription": page.meta_description,
        "h1": page.h1,
        "content": content,
        "wordCount": page.word_count,
        "generatedAt": page.generated_at,
    })
    return out


def assemble_pages(
    city: City,
    neighborhoods: list[str],
    sections: dict,
    generated_at: datetime | None = None,
) -> list[Page]:
    """Build the main page followed by one page per neighborhood, in input order."""
    stamp = (generated_at or datetime.now(timezone.utc)).isoformat()
    pages = [build_main_page(city, sections.get("main") or {}, stamp)]
    for name in neighborhoods:
        pages.append(
            build_neighborhood_page(city, name, sections.get(neighborhood_key(name)) or {}, stamp)
        )
    return pages
