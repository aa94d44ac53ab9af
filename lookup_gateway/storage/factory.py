from lookup_gateway.core.config import Settings
from lookup_gateway.storage.base import BlobStore
from lookup_gateway.utils.logging import get_logger


def create_blob_store(settings: Settings) -> BlobStore | None:
    backend = settings.STORE_BACKEND
    if backend == "none":
        return None
    if backend == "memory":
        from lookup_gateway.storage.memory import InMemoryBlobStore

        return InMemoryBlobStore()
    if backend == "database":
        from lookup_gateway.storage.database import DatabaseBlobStore

        return DatabaseBlobStore(settings.DATABASE_URL)
    if backend == "redis":
        from lookup_gateway.storage.redis_store import RedisBlobStore

        return RedisBlobStore(settings.REDIS_URL, namespace=settings.REDIS_NAMESPACE)
    if backend == "s3":
        from lookup_gateway.storage.s3 import S3BlobStore

        return S3BlobStore(
            settings.S3_BUCKET,
            endpoint_url=settings.S3_ENDPOINT_URL,
            region=settings.S3_REGION,
        )
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


async def build_blob_store(settings: Settings) -> BlobStore | None:
    """Create and initialise the configured store.

    Returns None when storage is disabled or cannot be reached; the gateway
    then runs without a cache layer.
    """
    logger = get_logger()
    store = create_blob_store(settings)
    if store is None:
        logger.warning("Blob store disabled (STORE_BACKEND=none); serving without cache")
        return None
    try:
        await store.init()
    except Exception as e:
        logger.error(
            f"Blob store '{store.name}' failed to initialise, serving without cache: {e}"
        )
        try:
            await store.close()
        except Exception as close_error:
            logger.warning(f"Error closing blob store after failed init: {close_error}")
        return None
    logger.info(f"Blob store initialised: {store.status()}")
    return store
