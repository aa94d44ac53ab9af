import os
import tempfile

# Settings are read at import time
os.environ.setdefault("UPSTREAM_BASE_URL", "http://upstream.test")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "lookup-gateway-tests"))

import httpx
import pytest

from lookup_gateway.core.config import settings
from lookup_gateway.core.dependencies import get_gateway
from lookup_gateway.services.gateway import Gateway
from lookup_gateway.storage.memory import InMemoryBlobStore
from main import app

UPSTREAM_BASE_URL = "http://upstream.test"


class RecordingStore(InMemoryBlobStore):
    """In-memory store that counts calls and can simulate an outage."""

    def __init__(self):
        super().__init__()
        self.list_calls = 0
        self.get_calls = 0
        self.put_calls = 0
        self.fail_reads = False
        self.fail_writes = False

    async def list_by_prefix(self, prefix, limit=None):
        self.list_calls += 1
        if self.fail_reads:
            raise ConnectionError("blob store is down")
        return await super().list_by_prefix(prefix, limit)

    async def get_object(self, key):
        self.get_calls += 1
        if self.fail_reads:
            raise ConnectionError("blob store is down")
        return await super().get_object(key)

    async def put_object(self, key, data, content_type, metadata=None):
        self.put_calls += 1
        if self.fail_writes:
            raise ConnectionError("blob store is read-only")
        return await super().put_object(key, data, content_type, metadata)


class FakeUpstream:
    """httpx.MockTransport handler keyed by URL path (or full URL for media)."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict[str, object] = {}

    def add(self, path_or_url: str, response):
        self.routes[path_or_url] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = str(request.url).split("?")[0]
        response = self.routes.get(url, self.routes.get(request.url.path))
        if response is None:
            return httpx.Response(404, json={"message": "Not found upstream"})
        if callable(response):
            return response(request)
        return response

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [call for call in self.calls if call.url.path == path]


@pytest.fixture
def fake_upstream():
    return FakeUpstream()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
async def http_client(fake_upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_upstream.handler)) as c:
        yield c


@pytest.fixture
async def gateway(store, http_client):
    gw = Gateway.build(settings, store, http_client)
    await gw.queue.start()
    yield gw
    await gw.queue.stop(drain_timeout=1.0)


@pytest.fixture
async def client(gateway):
    """ASGI client wired to the test gateway"""
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.state.gateway = gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    del app.state.gateway
