import httpx
import pytest

from lookup_gateway.core.exceptions.errors import UpstreamError, UpstreamTimeoutError
from lookup_gateway.services.cache_lookup import CacheLookup
from lookup_gateway.services.coordinator import RequestCoordinator
from lookup_gateway.services.models import LogicalRequest, RequestState
from lookup_gateway.services.upstream import UpstreamClient

REQUEST = LogicalRequest("/dni", "dni", "12345678")


async def test_miss_fetches_and_returns_persist_job(gateway, fake_upstream):
    fake_upstream.add("/dni", httpx.Response(200, json={"nombre": "ANA"}))

    outcome = await gateway.coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert outcome.state is RequestState.FETCH_OK
    assert outcome.value == {"nombre": "ANA"}
    assert outcome.persist_job.request == REQUEST
    assert outcome.from_cache is False
    assert len(fake_upstream.calls) == 1


async def test_hit_does_not_call_upstream_or_persist(gateway, fake_upstream, store):
    await gateway.persister.classify_and_persist(REQUEST, {"nombre": "ANA"})
    puts_before = store.put_calls

    outcome = await gateway.coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert outcome.state is RequestState.CACHE_HIT
    assert outcome.value == {"nombre": "ANA"}
    assert outcome.persist_job is None
    assert outcome.cache_key.startswith("consultas/dni/")
    assert fake_upstream.calls == []
    assert store.put_calls == puts_before


async def test_upstream_error_is_annotated_with_request(gateway, fake_upstream):
    fake_upstream.add("/dni", httpx.Response(404, json={"message": "no existe"}))

    with pytest.raises(UpstreamError) as excinfo:
        await gateway.coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert excinfo.value.status_code == 404
    assert excinfo.value.endpoint == "/dni"
    assert excinfo.value.param == {"name": "dni", "value": "12345678"}


async def test_timeout_is_raised_as_upstream_timeout(gateway, fake_upstream):
    def slow(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    fake_upstream.add("/dni", slow)
    with pytest.raises(UpstreamTimeoutError) as excinfo:
        await gateway.coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert excinfo.value.status_code == 504


async def test_empty_body_is_answered_but_not_persisted(gateway, fake_upstream):
    fake_upstream.add("/dni", httpx.Response(200))

    outcome = await gateway.coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert outcome.state is RequestState.FETCH_OK
    assert outcome.value is None
    assert outcome.persist_job is None


async def test_without_store_nothing_is_scheduled(http_client, fake_upstream):
    fake_upstream.add("/dni", httpx.Response(200, json={"nombre": "ANA"}))
    upstream = UpstreamClient("http://upstream.test", http_client)
    coordinator = RequestCoordinator(CacheLookup(None), upstream)

    outcome = await coordinator.handle(REQUEST, "/dni", {"dni": "12345678"})
    assert outcome.value == {"nombre": "ANA"}
    assert outcome.persist_job is None


async def test_upstream_request_shape(http_client, fake_upstream):
    fake_upstream.add("/dni_nombres", httpx.Response(200, json=[]))
    upstream = UpstreamClient("http://upstream.test/", http_client, user_agent="Lookup-Gateway/1.2.0")

    await upstream.fetch("/dni_nombres", {"apepaterno": "DE LA CRUZ", "apematerno": "Ñ"})
    call = fake_upstream.calls[0]
    assert str(call.url).startswith("http://upstream.test/dni_nombres?")
    assert call.url.params["apepaterno"] == "DE LA CRUZ"
    assert call.url.params["apematerno"] == "Ñ"
    assert call.headers["user-agent"] == "Lookup-Gateway/1.2.0"
