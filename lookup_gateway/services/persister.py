"""Classify fetched results and write them to the blob store."""

import asyncio
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from lookup_gateway.core.exceptions.errors import PersistenceError
from lookup_gateway.services.models import LogicalRequest
from lookup_gateway.services.upstream import MediaTooLargeError, UpstreamClient
from lookup_gateway.storage.base import BlobStore
from lookup_gateway.utils.keys import KeyDeriver
from lookup_gateway.utils.logging import get_logger

JSON_CONTENT_TYPE = "application/json"

IMAGE_URL = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?|$)")

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
}


class ResultKind(str, Enum):
    JSON = "json"
    MEDIA = "media"


@dataclass(frozen=True)
class Classification:
    kind: ResultKind
    document: Any = None  # JSON document to store
    url: str | None = None  # media source
    extension: str | None = None
    mime_type: str | None = None


def classify(result: Any) -> Classification:
    if isinstance(result, (dict, list)):
        return Classification(ResultKind.JSON, document=result)

    if isinstance(result, str):
        if result.startswith("http"):
            lowered = result.lower()
            image = IMAGE_URL.search(lowered)
            if image:
                extension = image.group(1)
                return Classification(
                    ResultKind.MEDIA,
                    url=result,
                    extension=extension,
                    mime_type=MIME_TYPES[extension],
                )
            if ".pdf" in lowered:
                return Classification(
                    ResultKind.MEDIA,
                    url=result,
                    extension="pdf",
                    mime_type=MIME_TYPES["pdf"],
                )
            return Classification(ResultKind.JSON, document={"url": result})
        return Classification(ResultKind.JSON, document={"text": result})

    return Classification(ResultKind.JSON, document={"value": result})


class ResultPersister:
    def __init__(
        self,
        store: BlobStore | None,
        upstream: UpstreamClient,
        key_deriver: KeyDeriver | None = None,
    ):
        self.store = store
        self.upstream = upstream
        self.keys = key_deriver or KeyDeriver()
        self.logger = get_logger()

    def _metadata(self, request: LogicalRequest, **extra) -> dict[str, Any]:
        return {
            "endpoint": request.route,
            "param_name": request.param_name,
            "param_value": request.param_value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": "api-cache",
            **extra,
        }

    async def classify_and_persist(self, request: LogicalRequest, result: Any) -> str | None:
        """Store ``result`` for later lookups and return the new key.

        Returns None when no store is configured. Raises PersistenceError on
        any download or write failure.
        """
        if self.store is None:
            return None
        classification = classify(result)
        if classification.kind is ResultKind.MEDIA:
            return await self._save_media(request, classification)
        return await self._save_json(request, classification.document)

    async def _save_json(self, request: LogicalRequest, document: Any) -> str:
        key = self.keys.json_key(request.route, request.param_name, request.param_value)
        content = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        try:
            await self.store.put_object(
                key, content, JSON_CONTENT_TYPE, self._metadata(request)
            )
        except Exception as e:
            raise PersistenceError(f"Saving {key} failed: {e}") from e
        self.logger.info(f"Saved JSON to storage: {key} ({len(content)} bytes)")
        return key

    async def _save_media(self, request: LogicalRequest, classification: Classification) -> str:
        url = classification.url
        try:
            media = await self.upstream.download(url)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise PersistenceError(f"Timeout downloading {classification.mime_type} from {url}") from e
        except httpx.HTTPStatusError as e:
            raise PersistenceError(
                f"HTTP {e.response.status_code} downloading {classification.mime_type} from {url}"
            ) from e
        except (httpx.HTTPError, MediaTooLargeError) as e:
            raise PersistenceError(f"Downloading {url} failed: {e}") from e

        key = self.keys.media_key(
            request.route, request.param_name, request.param_value, classification.extension
        )
        content_type = media.content_type or classification.mime_type
        metadata = self._metadata(
            request, original_url=url, content_length=len(media.content)
        )
        try:
            await self.store.put_object(key, media.content, content_type, metadata)
        except Exception as e:
            raise PersistenceError(f"Saving {key} failed: {e}") from e
        self.logger.info(
            f"Saved {content_type} to storage: {key} ({len(media.content)} bytes)"
        )
        return key
