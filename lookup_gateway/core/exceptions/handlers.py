from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback

from lookup_gateway.core.config import settings
from lookup_gateway.core.exceptions.errors import (
    ParameterValidationError,
    StorageNotConfiguredError,
    UpstreamError,
)
from lookup_gateway.core.responses import create_error_response
from lookup_gateway.utils.logging import get_logger

AVAILABLE_ENDPOINTS = [
    "/ - Service information",
    "/health - Health status",
    "/storage/stats - Storage statistics",
    "/sun, /sunat - SUNAT lookups",
    "/dni, /c4, /tra, etc. - DNI lookups",
    "... and many more (see / for the full list)",
]


def register_exception_handlers(app):
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger = get_logger()
        logger.error(
            f"Unhandled exception for {request.method} {request.url}: {exc}\n"
            f"Traceback: {traceback.format_exc()}\n"
            f"User-Agent: {request.headers.get('user-agent')}"
        )
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            error=str(exc) if settings.DEBUG else None,
        )

    @app.exception_handler(ParameterValidationError)
    async def parameter_validation_handler(
        request: Request, exc: ParameterValidationError
    ):
        logger = get_logger()
        logger.warning(f"Rejected {request.method} {request.url}: {exc.message}")
        return create_error_response(exc.status_code, exc.message)

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        return create_error_response(
            exc.status_code,
            exc.message,
            exc.detail,
            endpoint=exc.endpoint,
            param=exc.param,
        )

    @app.exception_handler(StorageNotConfiguredError)
    async def storage_not_configured_handler(
        request: Request, exc: StorageNotConfiguredError
    ):
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            exc.message,
            configured=False,
            error="Blob store unavailable",
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger = get_logger()
        raw_errors = exc.errors()
        logger.warning(
            f"Validation error for {request.method} {request.url}: {raw_errors}"
        )

        friendly_errors = {}
        for error in raw_errors:
            field = ".".join(map(str, error["loc"]))
            if field.startswith("query."):
                field = field.replace("query.", "")
            friendly_errors[field] = error["msg"]

        return create_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation failed",
            {"errors": friendly_errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger = get_logger()
        logger.warning(
            f"HTTP {exc.status_code} for {request.method} {request.url}: {exc.detail}"
        )
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return create_error_response(
                exc.status_code,
                "Endpoint not found",
                path=request.url.path,
                available_endpoints=AVAILABLE_ENDPOINTS,
            )
        return create_error_response(exc.status_code, str(exc.detail))
