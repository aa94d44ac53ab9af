import asyncio
import time

import httpx
import pytest

from lookup_gateway.core.exceptions.errors import PersistenceError, UpstreamTimeoutError
from lookup_gateway.services.models import LogicalRequest
from lookup_gateway.services.persister import ResultPersister
from lookup_gateway.services.upstream import UpstreamClient
from lookup_gateway.storage.memory import InMemoryBlobStore

BODY = b'{"a": "bcd"}'


@pytest.fixture
async def trickle_server():
    """Local HTTP server that sends its body one byte every 0.2s."""
    handlers = set()

    async def handle(reader, writer):
        handlers.add(asyncio.current_task())
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                b"Content-Length: " + str(len(BODY)).encode() + b"\r\n"
                b"Connection: close\r\n\r\n"
            )
            await writer.drain()
            for i in range(len(BODY)):
                writer.write(BODY[i : i + 1])
                await writer.drain()
                await asyncio.sleep(0.2)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield f"http://127.0.0.1:{port}"
    server.close()
    for task in handlers:
        task.cancel()
    await asyncio.gather(*handlers, return_exceptions=True)


async def test_fetch_deadline_covers_the_whole_response(trickle_server):
    async with httpx.AsyncClient(trust_env=False) as http:
        upstream = UpstreamClient(trickle_server, http, timeout=0.5)
        started = time.monotonic()
        with pytest.raises(UpstreamTimeoutError) as exc:
            await upstream.fetch("/dni", {"dni": "12345678"})
    assert time.monotonic() - started < 1.5
    assert exc.value.status_code == 504


async def test_media_deadline_covers_the_whole_transfer(trickle_server):
    store = InMemoryBlobStore()
    async with httpx.AsyncClient(trust_env=False) as http:
        upstream = UpstreamClient("http://upstream.test", http, media_timeout=0.5)
        persister = ResultPersister(store, upstream)
        started = time.monotonic()
        with pytest.raises(PersistenceError):
            await persister.classify_and_persist(
                LogicalRequest("/fa", "dni", "12345678"), f"{trickle_server}/foto.png"
            )
    assert time.monotonic() - started < 1.5
    assert await store.list_by_prefix("consultas/") == []
