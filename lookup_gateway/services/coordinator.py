from typing import Mapping

from lookup_gateway.core.exceptions.errors import UpstreamError
from lookup_gateway.services.cache_lookup import CacheLookup, decode_cached_object
from lookup_gateway.services.models import (
    LogicalRequest,
    LookupOutcome,
    PersistJob,
    RequestState,
)
from lookup_gateway.services.upstream import UpstreamClient
from lookup_gateway.utils.logging import get_logger


class RequestCoordinator:
    """Cache-aside flow for one logical request.

    A cache hit answers without touching the upstream API. A miss makes
    exactly one upstream call; the outcome then carries a persist job that
    the HTTP layer schedules after the response has been sent.
    """

    def __init__(self, cache: CacheLookup, upstream: UpstreamClient):
        self.cache = cache
        self.upstream = upstream
        self.logger = get_logger()

    @property
    def persistence_enabled(self) -> bool:
        return self.cache.store is not None

    async def handle(
        self,
        request: LogicalRequest,
        upstream_path: str,
        upstream_params: Mapping[str, str],
    ) -> LookupOutcome:
        cached = await self.cache.lookup(request)
        if cached is not None:
            return LookupOutcome(
                state=RequestState.CACHE_HIT,
                value=decode_cached_object(cached),
                cache_key=cached.key,
            )

        try:
            result = await self.upstream.fetch(upstream_path, upstream_params)
        except UpstreamError as e:
            self.logger.error(
                f"Upstream error for {request.route} ({e.status_code}): {e.message}"
            )
            e.endpoint = request.route
            e.param = {"name": request.param_name, "value": request.param_value}
            raise

        job = None
        # empty bodies are answered but never cached
        if self.persistence_enabled and result is not None:
            job = PersistJob(request, result)
        return LookupOutcome(state=RequestState.FETCH_OK, value=result, persist_job=job)
