from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ObjectInfo:
    """One entry of a prefix listing."""

    key: str
    created_at: datetime
    size: int
    content_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CachedObject:
    key: str
    created_at: datetime
    content_type: str
    payload: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


class BlobStore:
    """Key/value object store with list-by-prefix.

    Objects are written once and never mutated. ``created_at`` is recorded by
    the store itself at write time.
    """

    name: str = "blob-store"

    async def init(self) -> None:
        """Prepare connections or schema. Called once at startup."""

    async def close(self) -> None:
        """Release connections. Called once at shutdown."""

    async def list_by_prefix(self, prefix: str, limit: int | None = None) -> list[ObjectInfo]:  # pragma: no cover - interface
        raise NotImplementedError

    async def get_object(self, key: str) -> CachedObject:  # pragma: no cover - interface
        raise NotImplementedError

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    async def delete_objects(self, keys: list[str]) -> int:  # pragma: no cover - interface
        raise NotImplementedError

    def status(self) -> dict[str, object]:
        return {"backend": self.name}
