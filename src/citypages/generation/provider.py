"""Text generation provider — Anthropic Messages API over httpx.

The provider only turns (prompt, max_tokens, temperature) into free-form
text. It does not retry: a failed call is fatal to the job that made it.
"""

import logging
import time
from typing import Protocol

import httpx

from citypages.config import settings
from citypages.core.errors import ProviderError
from citypages.observability.tracing import log_metrics

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class TextProvider(Protocol):
    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str: ...


def _timeout() -> httpx.Timeout:
    # Fail fast on connect, generous on read: long sections take a while to stream out
    return httpx.Timeout(connect=10.0, read=settings.generation_timeout_seconds, write=10.0, pool=5.0)


class AnthropicProvider:
    """Single shared connection to the Anthropic API, reused across jobs."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=_timeout())
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Send one user message and return the text of the first content block."""
        if not self.api_key:
            raise ProviderError("ANTHROPIC_API_KEY is not configured")

        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        t0 = time.monotonic()
        try:
            resp = await self._get_client().post(ANTHROPIC_MESSAGES_URL, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Anthropic API error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(f"Anthropic API timed out: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Anthropic API request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Anthropic API returned a non-JSON body: {e}") from e

        try:
            blocks = data["content"]
        except (KeyError, TypeError) as e:
            raise ProviderError(f"Unexpected Anthropic response structure: {e}") from e

        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        logger.info(
            "Anthropic response (model=%s, in=%d, out=%d, stop=%s)",
            self.model, input_tokens, output_tokens, data.get("stop_reason"),
            extra={"duration_ms": round((time.monotonic() - t0) * 1000)},
        )
        if input_tokens or output_tokens:
            log_metrics({
                "anthropic_input_tokens": float(input_tokens),
                "anthropic_output_tokens": float(output_tokens),
            })

        if blocks and blocks[0].get("type") == "text":
            return blocks[0].get("text", "")
        return ""
