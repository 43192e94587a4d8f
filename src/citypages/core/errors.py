"""Exception hierarchy for the content generation service.

Errors raised inside a job's pipeline are fatal to that job and end up as the
job's error_message, so every message is written to read well on its own.
"""


class CityPagesError(Exception):
    """Base class for all citypages errors."""


class NotFoundError(CityPagesError):
    """A referenced record (city or job) does not exist."""


class PersistenceError(CityPagesError):
    """A record store read or write failed."""


class GenerationError(CityPagesError):
    """Base class for failures while producing a section's content."""


class ProviderError(GenerationError):
    """The text generation provider call failed (network, quota, bad response)."""


class NoStructuredPayloadError(GenerationError):
    """The provider response contained no {...} span."""

    def __init__(self, message: str = "No JSON in response"):
        super().__init__(message)


class MalformedPayloadError(GenerationError):
    """The {...} span in the provider response is not valid JSON."""


class PayloadShapeError(MalformedPayloadError):
    """The payload parsed as JSON but does not match the section's shape."""
