import time

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from lookup_gateway.utils.logging import get_logger


class LogRequestsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        logger = get_logger()
        logger.info(f"Request: {request.method} {request.url}")
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        cache_state = response.headers.get("x-cache", "-")
        logger.info(
            f"Response: {request.method} {request.url.path} {response.status_code} "
            f"cache={cache_state} {elapsed_ms:.1f}ms"
        )
        return response
