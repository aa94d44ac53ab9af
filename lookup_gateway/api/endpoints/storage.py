from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from lookup_gateway.core.config import settings
from lookup_gateway.core.dependencies import BlobStoreDependency, require_admin_key
from lookup_gateway.core.exceptions.errors import StorageNotConfiguredError
from lookup_gateway.core.responses import create_error_response
from lookup_gateway.services.storage_admin import clear_cache, collect_stats
from lookup_gateway.utils.logging import get_logger

router = APIRouter(
    prefix="/storage", tags=["Storage"], dependencies=[Depends(require_admin_key)]
)


@router.get("/stats")
async def storage_stats(store: BlobStoreDependency):
    try:
        stats = await collect_stats(store, limit=settings.STATS_LIST_LIMIT)
    except StorageNotConfiguredError:
        raise
    except Exception as e:
        get_logger().error(f"Error collecting storage statistics: {e}")
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Error retrieving statistics",
            error=str(e),
            configured=True,
        )
    return {
        "success": True,
        "stats": stats,
        "bucket": store.name,
        "backend": store.status(),
        "storageConfigured": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.delete("/clear")
async def storage_clear(store: BlobStoreDependency):
    try:
        deleted = await clear_cache(store, batch_size=settings.CLEAR_BATCH_SIZE)
    except StorageNotConfiguredError:
        raise
    except Exception as e:
        get_logger().error(f"Error clearing cache: {e}")
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Error clearing cache",
            error=str(e),
        )
    if deleted == 0:
        return {"success": True, "message": "No cached files to delete", "deleted": 0}
    return {
        "success": True,
        "message": "Cache cleared successfully",
        "deleted": deleted,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
