from typing import Any

from fastapi import status


class GatewayError(Exception):
    """Base class for errors raised by the gateway."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParameterValidationError(GatewayError):
    """The request carries none of the parameters its route accepts."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, params: list[str]):
        super().__init__(message)
        self.params = params


class CacheUnavailableError(GatewayError):
    """The blob store could not be listed, read or decoded during a lookup."""


class PersistenceError(GatewayError):
    """A fetched result could not be downloaded or written to the blob store."""


class StorageNotConfiguredError(GatewayError):
    """An admin operation needs the blob store but none is configured."""


class UpstreamError(GatewayError):
    """The upstream API answered with a non-2xx status or could not be reached.

    ``detail`` holds whatever the upstream sent back (decoded JSON when
    possible) or the transport error text.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: Any = None,
    ):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail if detail is not None else message
        self.endpoint: str | None = None
        self.param: dict[str, str] | None = None


class UpstreamTimeoutError(UpstreamError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class UpstreamUnavailableError(UpstreamError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
