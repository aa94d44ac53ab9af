import json
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as aioredis

from lookup_gateway.storage.base import BlobStore, CachedObject, ObjectInfo


class RedisBlobStore(BlobStore):
    """Each object is a Redis hash stored under ``<namespace>:<key>``.

    Keys are also members of a sorted set (all scores 0) so prefix listings
    are a bounded ZRANGEBYLEX instead of a keyspace SCAN.
    """

    name = "redis"

    def __init__(self, redis_url: str | None = None, namespace: str = "blobs", client=None):
        self._redis_url = redis_url
        self._namespace = namespace
        self._index_key = f"{namespace}::index"
        self._redis = client

    async def init(self) -> None:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        await self._redis.ping()

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()

    def _redis_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def list_by_prefix(self, prefix: str, limit: int | None = None) -> list[ObjectInfo]:
        # utf-8 never contains 0xff, so it closes the prefix range
        low = b"[" + prefix.encode("utf-8")
        high = low + b"\xff"
        if limit is not None:
            members = await self._redis.zrangebylex(self._index_key, low, high, start=0, num=limit)
        else:
            members = await self._redis.zrangebylex(self._index_key, low, high)
        keys = [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]
        if not keys:
            return []

        pipe = self._redis.pipeline()
        for key in keys:
            pipe.hmget(self._redis_key(key), "created_at", "size", "content_type", "metadata")
        rows = await pipe.execute()

        infos = []
        for key, (created_at, size, content_type, metadata) in zip(keys, rows):
            if created_at is None:
                # deleted between the index read and HMGET
                continue
            infos.append(
                ObjectInfo(
                    key=key,
                    created_at=datetime.fromisoformat(created_at.decode()),
                    size=int(size or 0),
                    content_type=content_type.decode() if content_type else None,
                    metadata=json.loads(metadata) if metadata else {},
                )
            )
        return infos

    async def get_object(self, key: str) -> CachedObject:
        fields = await self._redis.hgetall(self._redis_key(key))
        if not fields:
            raise KeyError(f"No object stored under {key}")
        return CachedObject(
            key=key,
            created_at=datetime.fromisoformat(fields[b"created_at"].decode()),
            content_type=fields[b"content_type"].decode(),
            payload=fields[b"payload"],
            metadata=json.loads(fields.get(b"metadata") or b"{}"),
        )

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        pipe = self._redis.pipeline(transaction=True)
        pipe.hset(
            self._redis_key(key),
            mapping={
                "payload": bytes(data),
                "content_type": content_type,
                "size": len(data),
                "created_at": datetime.now(timezone.utc).isoformat(),
                "metadata": json.dumps(metadata or {}),
            },
        )
        pipe.zadd(self._index_key, {key: 0})
        await pipe.execute()
        return key

    async def delete_objects(self, keys: list[str]) -> int:
        if not keys:
            return 0
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(*(self._redis_key(key) for key in keys))
        pipe.zrem(self._index_key, *keys)
        deleted, _ = await pipe.execute()
        return deleted

    def status(self) -> dict[str, object]:
        return {"backend": self.name, "namespace": self._namespace}
