"""Extraction client — one provider call plus JSON extraction from free text.

Models wrap JSON in prose or markdown fences no matter how firmly the prompt
says "ONLY valid JSON", so the payload is taken as the span from the first
'{' to the last '}' and parsed strictly. Nothing is repaired: a bad span is a
typed error and the caller decides what to do with it.
"""

import json
import logging

from citypages.config import settings
from citypages.core.errors import MalformedPayloadError, NoStructuredPayloadError
from citypages.generation.provider import TextProvider
from citypages.observability.tracing import start_span

logger = logging.getLogger(__name__)


def extract_payload(text: str) -> dict:
    """Parse the greedy {...} span of a provider response.

    Raises:
        NoStructuredPayloadError: no '{' ... '}' span in the text.
        MalformedPayloadError: the span is not valid JSON.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise NoStructuredPayloadError()

    span = text[start:end + 1]
    try:
        return json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Malformed JSON in response: {e}") from e


class ExtractionClient:
    """Calls the provider at a fixed temperature and extracts the JSON payload."""

    def __init__(self, provider: TextProvider, temperature: float | None = None):
        self.provider = provider
        self.temperature = settings.generation_temperature if temperature is None else temperature

    async def extract(self, prompt: str, max_tokens: int, name: str = "extract") -> dict:
        with start_span(name=f"generate_{name}", span_type="CHAT_MODEL") as span:
            span.set_inputs({"section": name, "max_tokens": max_tokens, "prompt_chars": len(prompt)})
            text = await self.provider.complete(prompt, max_tokens, self.temperature)
            span.set_outputs({"response_chars": len(text)})

        payload = extract_payload(text)
        logger.debug("Extracted payload with keys %s", sorted(payload), extra={"section": name})
        return payload
