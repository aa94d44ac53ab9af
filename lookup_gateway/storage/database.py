from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from lookup_gateway.db.models.cache import StoredObject
from lookup_gateway.db.session import create_session_factory, init_db
from lookup_gateway.storage.base import BlobStore, CachedObject, ObjectInfo


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseBlobStore(BlobStore):
    """Blob store backed by a single SQL table (``stored_objects``)."""

    name = "database"

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: AsyncEngine | None = None,
        session_factory: async_sessionmaker | None = None,
    ):
        if engine is None or session_factory is None:
            engine, session_factory = create_session_factory(database_url)
        self._engine = engine
        self._session_factory = session_factory

    async def init(self) -> None:
        await init_db(self._engine)

    async def close(self) -> None:
        await self._engine.dispose()

    async def list_by_prefix(self, prefix: str, limit: int | None = None) -> list[ObjectInfo]:
        stmt = (
            select(
                StoredObject.key,
                StoredObject.created_at,
                StoredObject.size,
                StoredObject.content_type,
                StoredObject.object_metadata.label("object_metadata"),
            )
            .where(StoredObject.key.startswith(prefix, autoescape=True))
            .order_by(StoredObject.key)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [
            ObjectInfo(
                key=row.key,
                created_at=_aware(row.created_at),
                size=row.size or 0,
                content_type=row.content_type,
                metadata=row.object_metadata or {},
            )
            for row in rows
        ]

    async def get_object(self, key: str) -> CachedObject:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StoredObject).where(StoredObject.key == key)
            )
            record = result.scalar_one_or_none()
        if record is None:
            raise KeyError(f"No object stored under {key}")
        return CachedObject(
            key=record.key,
            created_at=_aware(record.created_at),
            content_type=record.content_type,
            payload=record.payload,
            metadata=record.object_metadata or {},
        )

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    StoredObject(
                        key=key,
                        content_type=content_type,
                        payload=bytes(data),
                        size=len(data),
                        object_metadata=dict(metadata or {}),
                        created_at=datetime.now(timezone.utc),
                    )
                )
        return key

    async def delete_objects(self, keys: list[str]) -> int:
        if not keys:
            return 0
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(StoredObject).where(StoredObject.key.in_(keys))
                )
        return result.rowcount or 0

    def status(self) -> dict[str, object]:
        return {"backend": self.name, "url": self._engine.url.render_as_string(hide_password=True)}
