from datetime import datetime, timedelta, timezone
from typing import Any

from lookup_gateway.storage.base import BlobStore, CachedObject, ObjectInfo


class InMemoryBlobStore(BlobStore):
    """Process-local store, used for development and tests."""

    name = "memory"

    def __init__(self):
        self._objects: dict[str, CachedObject] = {}
        self._last_created: datetime | None = None

    def _created_now(self) -> datetime:
        # keep write order visible even when the clock does not advance
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    async def list_by_prefix(self, prefix: str, limit: int | None = None) -> list[ObjectInfo]:
        infos = [
            ObjectInfo(
                key=obj.key,
                created_at=obj.created_at,
                size=len(obj.payload),
                content_type=obj.content_type,
                metadata=dict(obj.metadata),
            )
            for key, obj in sorted(self._objects.items())
            if key.startswith(prefix)
        ]
        if limit is not None:
            infos = infos[:limit]
        return infos

    async def get_object(self, key: str) -> CachedObject:
        try:
            return self._objects[key]
        except KeyError:
            raise KeyError(f"No object stored under {key}") from None

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        self._objects[key] = CachedObject(
            key=key,
            created_at=self._created_now(),
            content_type=content_type,
            payload=bytes(data),
            metadata=dict(metadata or {}),
        )
        return key

    async def delete_objects(self, keys: list[str]) -> int:
        deleted = 0
        for key in keys:
            if self._objects.pop(key, None) is not None:
                deleted += 1
        return deleted

    def status(self) -> dict[str, object]:
        return {"backend": self.name, "objects": len(self._objects)}
