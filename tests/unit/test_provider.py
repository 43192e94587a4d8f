"""Tests for the Anthropic provider, using httpx.MockTransport for the API."""

import json

import httpx
import pytest

from citypages.core.errors import ProviderError
from citypages.generation.provider import ANTHROPIC_VERSION, AnthropicProvider


def _provider(handler, api_key="test-key") -> AnthropicProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AnthropicProvider(api_key=api_key, model="test-model", client=client)


def _ok(text="hello"):
    return httpx.Response(200, json={
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": 12, "output_tokens": 34},
        "stop_reason": "end_turn",
    })


class TestAnthropicProvider:
    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return _ok()

        provider = _provider(handler)
        await provider.complete("Write copy", 2500, 0.7)

        assert seen["headers"]["x-api-key"] == "test-key"
        assert seen["headers"]["anthropic-version"] == ANTHROPIC_VERSION
        assert seen["body"] == {
            "model": "test-model",
            "max_tokens": 2500,
            "temperature": 0.7,
            "messages": [{"role": "user", "content": "Write copy"}],
        }

    async def test_returns_first_text_block(self):
        provider = _provider(lambda request: _ok('{"content": "x"}'))
        assert await provider.complete("p", 10, 0.7) == '{"content": "x"}'

    async def test_non_text_block_returns_empty(self):
        provider = _provider(lambda request: httpx.Response(200, json={"content": [{"type": "tool_use"}]}))
        assert await provider.complete("p", 10, 0.7) == ""

    async def test_http_error(self):
        provider = _provider(lambda request: httpx.Response(529, text="overloaded"))
        with pytest.raises(ProviderError, match="529"):
            await provider.complete("p", 10, 0.7)

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(ProviderError, match="request failed"):
            await _provider(handler).complete("p", 10, 0.7)

    async def test_unexpected_structure(self):
        provider = _provider(lambda request: httpx.Response(200, json={"id": "msg"}))
        with pytest.raises(ProviderError, match="Unexpected"):
            await provider.complete("p", 10, 0.7)

    async def test_missing_api_key(self):
        provider = _provider(lambda request: _ok(), api_key="")
        with pytest.raises(ProviderError, match="ANTHROPIC_API_KEY"):
            await provider.complete("p", 10, 0.7)

    async def test_aclose(self):
        provider = _provider(lambda request: _ok())
        await provider.aclose()
        assert provider._client is None
