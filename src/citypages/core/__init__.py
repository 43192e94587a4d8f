"""Core domain types and errors shared across all citypages modules."""

from citypages.core.errors import (
    CityPagesError,
    GenerationError,
    MalformedPayloadError,
    NoStructuredPayloadError,
    NotFoundError,
    PayloadShapeError,
    PersistenceError,
    ProviderError,
)
from citypages.core.types import (
    City,
    JobStatus,
    Page,
    SectionSpec,
)

__all__ = [
    "City",
    "CityPagesError",
    "GenerationError",
    "JobStatus",
    "MalformedPayloadError",
    "NoStructuredPayloadError",
    "NotFoundError",
    "Page",
    "PayloadShapeError",
    "PersistenceError",
    "ProviderError",
    "SectionSpec",
]
