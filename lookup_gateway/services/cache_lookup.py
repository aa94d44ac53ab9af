"""Find and decode the freshest stored result for a logical request."""

import base64
import json
import re
from typing import Any, Literal

from lookup_gateway.core.exceptions.errors import CacheUnavailableError
from lookup_gateway.services.models import LogicalRequest
from lookup_gateway.storage.base import BlobStore, CachedObject, ObjectInfo
from lookup_gateway.utils.keys import route_prefix, sanitize_value
from lookup_gateway.utils.logging import get_logger

CACHED_MESSAGE = "Result served from cache"

MatchMode = Literal["substring", "exact"]


def _matches_substring(info: ObjectInfo, request: LogicalRequest) -> bool:
    # Loose on purpose: "1" matches every key containing a "1". Kept for
    # compatibility with entries written by older key schemes.
    needle = str(request.param_value).lower()
    if needle in info.key.lower():
        return True
    stored_value = info.metadata.get("param_value")
    return stored_value is not None and needle in str(stored_value).lower()


def _matches_exact(info: ObjectInfo, request: LogicalRequest) -> bool:
    stored_name = info.metadata.get("param_name")
    stored_value = info.metadata.get("param_value")
    if stored_name is not None and stored_value is not None:
        return stored_name == request.param_name and str(stored_value) == str(
            request.param_value
        )
    filename = info.key.rsplit("/", 1)[-1]
    pattern = (
        re.escape(f"{request.param_name}_{sanitize_value(request.param_value)}_")
        + r"\d+\.\w+"
    )
    return re.fullmatch(pattern, filename) is not None


def decode_cached_object(obj: CachedObject) -> Any:
    """Turn a stored object into a response value. Never raises.

    JSON payloads are returned as parsed values. Anything else is wrapped in
    an envelope marked ``opaque`` so the caller still gets something usable.
    """
    envelope = {
        "success": True,
        "message": CACHED_MESSAGE,
        "opaque": True,
        "contentType": obj.content_type,
        "storageReference": obj.key,
    }
    try:
        text = obj.payload.decode("utf-8")
    except UnicodeDecodeError:
        return {
            **envelope,
            "encoding": "base64",
            "data": base64.b64encode(obj.payload).decode("ascii"),
        }

    stripped = text.strip()
    if stripped.startswith("{") or stripped.startswith("["):
        try:
            return json.loads(stripped)
        except ValueError:
            get_logger().warning(f"Cached object {obj.key} is not valid JSON; serving raw")
    return {**envelope, "data": text}


class CacheLookup:
    def __init__(
        self,
        store: BlobStore | None,
        *,
        list_limit: int = 50,
        match_mode: MatchMode = "substring",
    ):
        self.store = store
        self.list_limit = list_limit
        self._matches = _matches_exact if match_mode == "exact" else _matches_substring
        self.logger = get_logger()

    async def find_latest(self, request: LogicalRequest) -> ObjectInfo | None:
        """Return the newest matching listing entry, or None on a cold path."""
        prefix = route_prefix(request.route)
        try:
            listing = await self.store.list_by_prefix(prefix, limit=self.list_limit)
        except Exception as e:
            raise CacheUnavailableError(f"Listing {prefix} failed: {e}") from e

        candidates = [info for info in listing if self._matches(info, request)]
        if not candidates:
            return None
        return max(candidates, key=lambda info: (info.created_at, info.key))

    async def lookup(self, request: LogicalRequest) -> CachedObject | None:
        """Fetch the most recent cached object for ``request``.

        Store failures are logged and reported as a miss so the caller can
        fall through to the upstream API.
        """
        if self.store is None:
            return None
        try:
            latest = await self.find_latest(request)
            if latest is None:
                self.logger.info(
                    f"Cache miss: {request.route} {request.param_name}={request.param_value}"
                )
                return None
            try:
                obj = await self.store.get_object(latest.key)
            except Exception as e:
                raise CacheUnavailableError(f"Reading {latest.key} failed: {e}") from e
        except CacheUnavailableError as e:
            self.logger.warning(f"Cache unavailable, falling back to upstream: {e}")
            return None

        self.logger.info(f"Cache hit: {obj.key}")
        return obj
