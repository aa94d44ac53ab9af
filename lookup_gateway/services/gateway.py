from dataclasses import dataclass

import httpx

from lookup_gateway.core.config import Settings
from lookup_gateway.services.cache_lookup import CacheLookup
from lookup_gateway.services.coordinator import RequestCoordinator
from lookup_gateway.services.persistence_queue import PersistenceQueue
from lookup_gateway.services.persister import ResultPersister
from lookup_gateway.services.upstream import UpstreamClient
from lookup_gateway.storage.base import BlobStore


@dataclass
class Gateway:
    """Process-wide services shared by every request."""

    store: BlobStore | None
    upstream: UpstreamClient
    cache: CacheLookup
    persister: ResultPersister
    queue: PersistenceQueue
    coordinator: RequestCoordinator

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: BlobStore | None,
        http_client: httpx.AsyncClient,
    ) -> "Gateway":
        upstream = UpstreamClient(
            settings.UPSTREAM_BASE_URL,
            http_client,
            timeout=settings.UPSTREAM_TIMEOUT,
            media_timeout=settings.MEDIA_DOWNLOAD_TIMEOUT,
            media_max_bytes=settings.MEDIA_MAX_BYTES,
            user_agent=settings.user_agent,
        )
        cache = CacheLookup(
            store,
            list_limit=settings.CACHE_LIST_LIMIT,
            match_mode=settings.CACHE_MATCH_MODE,
        )
        persister = ResultPersister(store, upstream)
        queue = PersistenceQueue(
            persister,
            maxsize=settings.PERSIST_QUEUE_SIZE,
            workers=settings.PERSIST_WORKERS,
        )
        return cls(
            store=store,
            upstream=upstream,
            cache=cache,
            persister=persister,
            queue=queue,
            coordinator=RequestCoordinator(cache, upstream),
        )

    @property
    def storage_configured(self) -> bool:
        return self.store is not None
