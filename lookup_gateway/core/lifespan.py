import time
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from lookup_gateway.core.config import settings
from lookup_gateway.services.gateway import Gateway
from lookup_gateway.storage.factory import build_blob_store
from lookup_gateway.utils.logging import get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger = get_logger()
    store = await build_blob_store(settings)
    http_client = httpx.AsyncClient(follow_redirects=True)
    gateway = Gateway.build(settings, store, http_client)
    await gateway.queue.start()
    app.state.gateway = gateway
    app.state.started_at = time.monotonic()
    logger.info(f"Startup: {app.title} v{app.version} starting...")
    logger.info(f"Upstream base URL: {settings.UPSTREAM_BASE_URL}")
    logger.info(
        f"Blob storage: {store.status() if store else 'not configured, cache disabled'}"
    )
    yield
    # Shutdown
    await gateway.queue.stop(drain_timeout=settings.PERSIST_DRAIN_TIMEOUT)
    await http_client.aclose()
    if store is not None:
        await store.close()
    logger.info("Shutdown: App shutting down...")
