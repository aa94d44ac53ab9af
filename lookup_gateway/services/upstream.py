import asyncio
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from lookup_gateway.core.exceptions.errors import (
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from lookup_gateway.utils.logging import get_logger


@dataclass(frozen=True)
class DownloadedMedia:
    url: str
    content: bytes
    content_type: str | None


class MediaTooLargeError(Exception):
    pass


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class UpstreamClient:
    """GET-only client for the upstream data API and for media downloads.

    ``http_client`` is shared by both operations and has no base URL; the
    upstream base is prepended here so media URLs can point anywhere.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        *,
        timeout: float = 30.0,
        media_timeout: float = 30.0,
        media_max_bytes: int = 10 * 1024 * 1024,
        user_agent: str | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = http_client
        self._timeout = timeout
        self._media_timeout = media_timeout
        self._media_max_bytes = media_max_bytes
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self.logger = get_logger()

    async def fetch(self, path: str, params: Mapping[str, str]) -> Any:
        """Issue one GET and return the decoded body.

        Raises UpstreamTimeoutError, UpstreamUnavailableError or UpstreamError.
        Never retries. ``timeout`` bounds the whole call, not each socket read.
        """
        url = f"{self.base_url}{path}"
        self.logger.info(f"Calling upstream API: {url} params={dict(params)}")
        try:
            response = await asyncio.wait_for(
                self._http.get(
                    url, params=dict(params), headers=self._headers, timeout=self._timeout
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(
                "Timeout while querying the upstream API",
                detail=f"No complete answer within {self._timeout}s",
            ) from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                "Timeout while querying the upstream API", detail=str(e) or repr(e)
            ) from e
        except httpx.ConnectError as e:
            raise UpstreamUnavailableError(
                "Could not connect to the upstream API", detail=str(e) or repr(e)
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError("Lookup failed", detail=str(e) or repr(e)) from e

        if not response.is_success:
            detail = _decode_body(response)
            message = None
            if isinstance(detail, dict):
                message = detail.get("message")
            raise UpstreamError(
                message or f"Error {response.status_code} from upstream server",
                status_code=response.status_code,
                detail=detail,
            )
        return _decode_body(response)

    async def download(self, url: str) -> DownloadedMedia:
        """Download binary media, refusing non-2xx answers and oversized bodies.

        Raises asyncio.TimeoutError when the whole transfer takes longer than
        ``media_timeout``.
        """
        return await asyncio.wait_for(self._download(url), timeout=self._media_timeout)

    async def _download(self, url: str) -> DownloadedMedia:
        async with self._http.stream(
            "GET", url, headers=self._headers, timeout=self._media_timeout
        ) as response:
            response.raise_for_status()
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self._media_max_bytes:
                raise MediaTooLargeError(
                    f"{url} declares {declared} bytes (limit {self._media_max_bytes})"
                )
            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > self._media_max_bytes:
                    raise MediaTooLargeError(
                        f"{url} exceeded {self._media_max_bytes} bytes"
                    )
                chunks.append(chunk)
            return DownloadedMedia(
                url=url,
                content=b"".join(chunks),
                content_type=response.headers.get("content-type"),
            )
