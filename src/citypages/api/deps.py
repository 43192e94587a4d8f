"""Shared client handles for request handlers.

One record store and one provider connection per process, created on first
use. Tests swap them out with app.dependency_overrides.
"""

from citypages.generation.extraction import ExtractionClient
from citypages.generation.provider import AnthropicProvider
from citypages.storage.db import RecordStore

_store: RecordStore | None = None
_provider: AnthropicProvider | None = None


def get_store() -> RecordStore:
    global _store
    if _store is None:
        _store = RecordStore()
    return _store


def get_provider() -> AnthropicProvider:
    global _provider
    if _provider is None:
        _provider = AnthropicProvider()
    return _provider


def get_extraction_client() -> ExtractionClient:
    return ExtractionClient(get_provider())


async def close_clients() -> None:
    global _provider
    if _provider is not None:
        await _provider.aclose()
        _provider = None
