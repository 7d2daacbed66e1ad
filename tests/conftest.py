"""Shared fixtures for Follow-Up Engine tests."""

import asyncio
import json
import os
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

# Rule-based scoring and templates only; no network in tests
os.environ["LLM_PROVIDER"] = "none"
os.environ.setdefault("DEDUPE_STAGE_ACTIONS", "true")

from lead_scoring.application import ApplicationSnapshot  # noqa: E402

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def make_application():
    """Factory for application snapshots built from camelCase records."""

    def _make(**overrides):
        record = {
            "id": "app-1",
            "fullName": "Jane Doe",
            "email": "jane@example.com",
            "phone": "+15555550100",
            "businessName": "Acme Bakery",
            "createdAt": (NOW - timedelta(hours=2)).isoformat(),
        }
        record.update(overrides)
        return ApplicationSnapshot.from_dict(record)

    return _make


class FakeProvider:
    """Generative provider double returning scripted responses."""

    name = "fake"

    def __init__(self, responses=None, error=None, delay=0.0):
        self.responses = list(responses or [])
        self.error = error
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def agenerate(self, prompt, system=None, temperature=None, json_mode=False):
        self.calls.append({"prompt": prompt, "system": system, "temperature": temperature})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
            return response if isinstance(response, str) else json.dumps(response)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_provider():
    return FakeProvider


class WebhookRecorder:
    """Records CRM webhook posts through an httpx.MockTransport."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request):
        if self.error is not None:
            raise self.error
        self.requests.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "json": json.loads(request.content) if request.content else None,
        })
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    def urls(self):
        return [r["url"] for r in self.requests]

    def to(self, slug):
        return [r for r in self.requests if r["url"].endswith(slug)]


@pytest.fixture
def webhook_recorder():
    return WebhookRecorder


@pytest.fixture
def client():
    """FastAPI test client with lifespan startup and shutdown."""
    from api.main import app
    with TestClient(app) as test_client:
        yield test_client
