import re
from datetime import datetime, timezone

from lookup_gateway.core.exceptions.errors import StorageNotConfiguredError
from lookup_gateway.storage.base import BlobStore
from lookup_gateway.utils.keys import KEY_ROOT
from lookup_gateway.utils.logging import get_logger

IMAGE_NAME = re.compile(r"\.(jpg|jpeg|png|gif|webp)$")


def _require(store: BlobStore | None) -> BlobStore:
    if store is None:
        raise StorageNotConfiguredError("Blob storage is not configured")
    return store


async def collect_stats(store: BlobStore | None, limit: int = 1000) -> dict:
    """Summarise stored objects by endpoint and file type."""
    store = _require(store)
    objects = await store.list_by_prefix(f"{KEY_ROOT}/", limit=limit)

    stats = {
        "totalFiles": len(objects),
        "endpoints": {},
        "totalSize": 0,
        "byType": {"json": 0, "images": 0, "pdfs": 0, "other": 0},
    }
    for info in objects:
        stats["totalSize"] += info.size
        name = info.key.lower()
        if name.endswith(".json"):
            stats["byType"]["json"] += 1
        elif IMAGE_NAME.search(name):
            stats["byType"]["images"] += 1
        elif name.endswith(".pdf"):
            stats["byType"]["pdfs"] += 1
        else:
            stats["byType"]["other"] += 1

        parts = info.key.split("/")
        if len(parts) > 1:
            endpoint = parts[1]
            stats["endpoints"][endpoint] = stats["endpoints"].get(endpoint, 0) + 1

    stats["totalSizeMB"] = round(stats["totalSize"] / (1024 * 1024), 2)
    stats["averageFileSize"] = round(stats["totalSize"] / len(objects)) if objects else 0
    return stats


async def clear_cache(store: BlobStore | None, batch_size: int = 100) -> int:
    """Delete every object under the cache root, ``batch_size`` keys at a time."""
    store = _require(store)
    logger = get_logger()
    objects = await store.list_by_prefix(f"{KEY_ROOT}/")
    keys = [info.key for info in objects]

    deleted = 0
    for start in range(0, len(keys), batch_size):
        batch = keys[start : start + batch_size]
        deleted += await store.delete_objects(batch)
        logger.info(f"Deleted batch of {len(batch)} objects (total: {deleted})")
    logger.info(
        f"Cache cleared at {datetime.now(timezone.utc).isoformat()}: {deleted} objects"
    )
    return deleted
