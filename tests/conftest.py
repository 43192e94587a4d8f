"""Shared test fixtures — in-memory record store and scripted text provider."""

import json
import uuid
from unittest.mock import patch

import mlflow
import pytest

from citypages.core.errors import PersistenceError


class InMemoryStore:
    """Record store double. Keeps every update so tests can replay progress."""

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = {"cities": {}, "research_jobs": {}}
        self.updates: list[tuple[str, str, dict]] = []
        self.fail_insert = False
        self.fail_update = None  # predicate over update values → raise PersistenceError

    def add_city(self, city_id: str, city: str, state_code: str) -> None:
        self.tables["cities"][city_id] = {"id": city_id, "city": city, "state_code": state_code}

    async def fetch_by_id(self, table, record_id):
        record = self.tables[table].get(record_id)
        return dict(record) if record is not None else None

    async def insert(self, table, record):
        if self.fail_insert:
            raise PersistenceError(f"insert into {table} failed")
        stored = dict(record)
        stored.setdefault("id", str(uuid.uuid4()))
        self.tables[table][stored["id"]] = stored
        return dict(stored)

    async def update_by_id(self, table, record_id, values):
        if self.fail_update is not None and self.fail_update(values):
            raise PersistenceError(f"update of {table}/{record_id} failed")
        if record_id not in self.tables[table]:
            return False
        self.updates.append((table, record_id, dict(values)))
        self.tables[table][record_id].update(values)
        return True

    def progress_history(self, job_id: str) -> list[int]:
        return [
            values["progress"]
            for table, rid, values in self.updates
            if rid == job_id and "progress" in values
        ]


def default_response(prompt: str, max_tokens: int) -> str:
    """Answer in the shape the prompt asks for, wrapped in chatty prose."""
    if '"cta"' in prompt:
        payload = {"faqs": [{"question": "How fast?", "answer": "Same day."}], "cta": "Call today", "wordCount": 800}
    elif '"faqs"' in prompt:
        payload = {"faqs": [{"question": "Do I need a permit?", "answer": "Sometimes."}], "wordCount": 1000}
    elif '"neighborhoods"' in prompt:
        payload = {"content": "Areas we serve.", "neighborhoods": ["Old Town", "Lakeside"], "wordCount": 1000}
    else:
        payload = {"content": "Generated copy.", "wordCount": 500}
    return f"Sure! Here is the JSON you asked for:\n{json.dumps(payload)}\nLet me know if you need changes."


class ScriptedProvider:
    """Text provider double. Records every call; responder decides the reply."""

    def __init__(self, responder=default_response):
        self.responder = responder
        self.calls: list[dict] = []

    async def complete(self, prompt, max_tokens, temperature):
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature})
        return self.responder(prompt, max_tokens)


@pytest.fixture(autouse=True)
def _disable_mlflow():
    """Disable MLflow tracing and metric logging — no mlruns/ writes from tests."""
    mlflow.tracing.disable()
    with patch("citypages.generation.provider.log_metrics"):
        yield
    mlflow.tracing.enable()


@pytest.fixture
def store():
    s = InMemoryStore()
    s.add_city("c1", "Springfield", "IL")
    return s


@pytest.fixture
def provider():
    return ScriptedProvider()
