import json

import httpx
import pytest

from lookup_gateway.core.exceptions.errors import PersistenceError
from lookup_gateway.services.cache_lookup import CacheLookup, decode_cached_object
from lookup_gateway.services.models import LogicalRequest
from lookup_gateway.services.persister import ResultKind, ResultPersister, classify
from lookup_gateway.services.upstream import UpstreamClient

REQUEST = LogicalRequest("/fa", "dni", "12345678")
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_classify_structured():
    assert classify({"a": 1}).kind is ResultKind.JSON
    assert classify([1, 2]).document == [1, 2]


def test_classify_image_url():
    c = classify("https://x.test/img.png")
    assert c.kind is ResultKind.MEDIA
    assert c.extension == "png"
    assert c.mime_type == "image/png"


def test_classify_image_url_with_query_string():
    c = classify("https://x.test/photo.JPEG?size=large")
    assert c.extension == "jpeg"
    assert c.mime_type == "image/jpeg"


def test_classify_pdf_url():
    c = classify("https://x.test/doc.pdf")
    assert c.kind is ResultKind.MEDIA
    assert c.extension == "pdf"
    assert c.mime_type == "application/pdf"


def test_classify_unknown_url():
    c = classify("https://x.test/unknown")
    assert c.kind is ResultKind.JSON
    assert c.document == {"url": "https://x.test/unknown"}


def test_classify_plain_text():
    assert classify("hello").document == {"text": "hello"}


def test_classify_scalar():
    assert classify(42).document == {"value": 42}


async def test_json_round_trip(gateway, store):
    result = {"nombre": "ANA", "hijos": [{"n": 1}, {"n": 2}], "activo": True}
    key = await gateway.persister.classify_and_persist(REQUEST, result)

    obj = await CacheLookup(store).lookup(REQUEST)
    assert obj.key == key
    assert obj.content_type == "application/json"
    assert obj.metadata["param_value"] == "12345678"
    assert obj.metadata["source"] == "api-cache"
    assert decode_cached_object(obj) == result


async def test_persisting_twice_keeps_both_and_lookup_returns_latest(gateway, store):
    first = await gateway.persister.classify_and_persist(REQUEST, {"version": 1})
    second = await gateway.persister.classify_and_persist(REQUEST, {"version": 2})
    assert first != second
    assert len(await store.list_by_prefix("consultas/fa/")) == 2

    obj = await CacheLookup(store).lookup(REQUEST)
    assert decode_cached_object(obj) == {"version": 2}


async def test_text_and_unknown_url_persist_as_json(gateway, store):
    key = await gateway.persister.classify_and_persist(REQUEST, "hello")
    assert json.loads((await store.get_object(key)).payload) == {"text": "hello"}

    key = await gateway.persister.classify_and_persist(REQUEST, "https://x.test/unknown")
    assert json.loads((await store.get_object(key)).payload) == {"url": "https://x.test/unknown"}


async def test_image_is_downloaded_and_stored_as_media(gateway, store, fake_upstream):
    fake_upstream.add(
        "https://x.test/img.png",
        httpx.Response(200, content=PNG, headers={"content-type": "image/png"}),
    )
    key = await gateway.persister.classify_and_persist(REQUEST, "https://x.test/img.png")

    assert key.startswith("consultas/fa/media/dni_12345678_")
    assert key.endswith(".png")
    obj = await store.get_object(key)
    assert obj.payload == PNG
    assert obj.content_type == "image/png"
    assert obj.metadata["original_url"] == "https://x.test/img.png"
    assert obj.metadata["content_length"] == len(PNG)


async def test_pdf_without_content_type_uses_mapped_mime(gateway, store, fake_upstream):
    fake_upstream.add("https://x.test/doc.pdf", httpx.Response(200, content=b"%PDF-1.7"))
    key = await gateway.persister.classify_and_persist(REQUEST, "https://x.test/doc.pdf")

    assert key.endswith(".pdf")
    assert (await store.get_object(key)).content_type == "application/pdf"


async def test_media_download_non_2xx_raises(gateway, store, fake_upstream):
    fake_upstream.add("https://x.test/img.png", httpx.Response(403))
    with pytest.raises(PersistenceError) as excinfo:
        await gateway.persister.classify_and_persist(REQUEST, "https://x.test/img.png")
    assert "403" in excinfo.value.message
    assert store.put_calls == 0


async def test_media_download_size_limit(store, fake_upstream):
    fake_upstream.add("https://x.test/big.gif", httpx.Response(200, content=b"G" * 2048))
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_upstream.handler)) as http:
        upstream = UpstreamClient("http://upstream.test", http, media_max_bytes=1024)
        persister = ResultPersister(store, upstream)
        with pytest.raises(PersistenceError):
            await persister.classify_and_persist(REQUEST, "https://x.test/big.gif")
    assert store.put_calls == 0


async def test_media_download_timeout(gateway, fake_upstream):
    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    fake_upstream.add("https://x.test/slow.webp", slow)
    with pytest.raises(PersistenceError) as excinfo:
        await gateway.persister.classify_and_persist(REQUEST, "https://x.test/slow.webp")
    assert "Timeout" in excinfo.value.message


async def test_store_write_failure_raises_persistence_error(gateway, store):
    store.fail_writes = True
    with pytest.raises(PersistenceError):
        await gateway.persister.classify_and_persist(REQUEST, {"a": 1})


async def test_without_store_nothing_is_written(http_client):
    upstream = UpstreamClient("http://upstream.test", http_client)
    assert await ResultPersister(None, upstream).classify_and_persist(REQUEST, {"a": 1}) is None
