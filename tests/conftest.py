"""
Shared fixtures: in-memory backends and a gateway app wired to them.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from gatex.api.app import create_app
from gatex.config import Settings
from gatex.entities import ModelInfo

MODELS = [
    ModelInfo(id="m", name="Test Model", vendor="test", family="test", max_input_tokens=8192),
    ModelInfo(id="copilot-gpt-4o", name="GPT-4o", vendor="copilot", family="gpt-4o"),
    ModelInfo(
        id="claude-sonnet-4", name="Claude Sonnet 4", vendor="anthropic", family="claude-sonnet"
    ),
]


class FakeCatalog:
    """Model catalog returning a fixed list."""

    def __init__(self, models=None):
        self.models = list(MODELS if models is None else models)
        self.calls = 0

    async def list_models(self):
        self.calls += 1
        return list(self.models)


class FakeBackend:
    """Backend that streams a fixed list of chunks.

    ``fail_with`` raises before the first chunk, ``fail_after`` raises after
    that many chunks, ``hang`` never produces a chunk.
    """

    def __init__(self, chunks=("hel", "lo"), fail_with=None, fail_after=None, hang=False):
        self.chunks = list(chunks)
        self.fail_with = fail_with
        self.fail_after = fail_after
        self.hang = hang
        self.calls = []

    async def invoke(self, model, messages, options, cancellation):
        self.calls.append({"model": model, "messages": messages, "options": options})
        return self._stream()

    async def _stream(self):
        if self.hang:
            await asyncio.Event().wait()
        if self.fail_with is not None:
            raise self.fail_with
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("backend exploded")
            yield chunk


class SlowFirstLineTransport(httpx.AsyncBaseTransport):
    """HTTP transport that stays silent before answering and honours read timeouts."""

    def __init__(self, delay, body):
        self.delay = delay
        self.body = body
        self.requests = []

    async def handle_async_request(self, request):
        self.requests.append(request)
        read_timeout = request.extensions.get("timeout", {}).get("read")
        if read_timeout is not None and read_timeout < self.delay:
            await asyncio.sleep(read_timeout)
            raise httpx.ReadTimeout("", request=request)
        await asyncio.sleep(self.delay)
        return httpx.Response(200, content=self.body)


def make_settings(**overrides) -> Settings:
    values = {
        "host": "127.0.0.1",
        "port": 24680,
        "timeout": 5.0,
        "max_retries": 0,
        "max_concurrent_requests": 5,
        "cache_enabled": True,
        "cache_max_age": 300.0,
        "cache_max_size": 1024 * 1024,
        "model_cache_ttl": 30.0,
        "ollama_base_url": "http://ollama.test",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(backend, catalog, settings):
    return create_app(backend=backend, catalog=catalog, settings_provider=lambda: settings)


@pytest.fixture
def client(app):
    """Create a test client."""
    with TestClient(app) as test_client:
        yield test_client
