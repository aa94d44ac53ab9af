import asyncio
from typing import Any
from urllib.parse import quote, unquote

import boto3

from lookup_gateway.storage.base import BlobStore, CachedObject, ObjectInfo

# S3 DeleteObjects accepts at most 1000 keys per call
_DELETE_BATCH = 1000


class S3BlobStore(BlobStore):
    """S3-compatible object storage. boto3 calls run in a worker thread."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region: str | None = None,
        client=None,
    ):
        self._bucket = bucket
        self._endpoint_url = endpoint_url
        if client is None:
            session = boto3.session.Session()
            client_args = {"endpoint_url": endpoint_url, "region_name": region}
            client = session.client("s3", **{k: v for k, v in client_args.items() if v})
        self._client = client

    async def init(self) -> None:
        await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)

    async def list_by_prefix(self, prefix: str, limit: int | None = None) -> list[ObjectInfo]:
        infos: list[ObjectInfo] = []
        kwargs: dict[str, Any] = {"Bucket": self._bucket, "Prefix": prefix}
        while True:
            if limit is not None:
                kwargs["MaxKeys"] = min(1000, limit - len(infos))
            response = await asyncio.to_thread(self._client.list_objects_v2, **kwargs)
            for item in response.get("Contents", []):
                infos.append(
                    ObjectInfo(
                        key=item["Key"],
                        created_at=item["LastModified"],
                        size=int(item.get("Size", 0)),
                    )
                )
            if limit is not None and len(infos) >= limit:
                return infos[:limit]
            if not response.get("IsTruncated"):
                return infos
            kwargs["ContinuationToken"] = response["NextContinuationToken"]

    async def get_object(self, key: str) -> CachedObject:
        response = await asyncio.to_thread(
            self._client.get_object, Bucket=self._bucket, Key=key
        )
        payload = await asyncio.to_thread(response["Body"].read)
        return CachedObject(
            key=key,
            created_at=response["LastModified"],
            content_type=response.get("ContentType") or "application/octet-stream",
            payload=payload,
            metadata={k: unquote(v) for k, v in response.get("Metadata", {}).items()},
        )

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        # user metadata travels as HTTP headers and must stay ASCII
        encoded = {k: quote(str(v), safe="") for k, v in (metadata or {}).items()}
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self._bucket,
            Key=key,
            Body=bytes(data),
            ContentType=content_type,
            Metadata=encoded,
        )
        return key

    async def delete_objects(self, keys: list[str]) -> int:
        deleted = 0
        for start in range(0, len(keys), _DELETE_BATCH):
            batch = keys[start : start + _DELETE_BATCH]
            response = await asyncio.to_thread(
                self._client.delete_objects,
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": False},
            )
            deleted += len(response.get("Deleted", []))
        return deleted

    def status(self) -> dict[str, object]:
        return {"backend": self.name, "bucket": self._bucket, "endpoint": self._endpoint_url}
