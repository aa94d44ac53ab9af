import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from lookup_gateway.api.route_table import ROUTES
from lookup_gateway.api.router import router as api_router
from lookup_gateway.core.config import settings
from lookup_gateway.core.exceptions.handlers import register_exception_handlers
from lookup_gateway.core.lifespan import lifespan
from lookup_gateway.core.logging import setup_early_logging
from lookup_gateway.core.middlewares import LogRequestsMiddleware
from lookup_gateway.core.openapi import custom_openapi
from lookup_gateway.core.rate_limiting import setup_rate_limiting
from lookup_gateway.core.responses import send_success

# Setup early logging for startup errors
setup_early_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.PROJECT_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Lookups", "description": "Cached upstream lookups"},
        {"name": "Storage", "description": "Blob storage administration"},
    ],
)

# Customize OpenAPI schema
app.openapi = lambda: custom_openapi(app)

# Setup rate limiting if enabled
setup_rate_limiting(app)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add logging middleware
app.add_middleware(LogRequestsMiddleware)

# Register all exception handlers
register_exception_handlers(app)

# Include API routers
app.include_router(api_router)


def _gateway_state(request: Request):
    return getattr(request.app.state, "gateway", None)


@app.get("/")
async def root(request: Request):
    gateway = _gateway_state(request)
    return {
        "success": True,
        "message": f"{settings.APP_NAME} - cached lookups over the upstream API",
        "version": settings.PROJECT_VERSION,
        "storage_configured": bool(gateway and gateway.storage_configured),
        "environment": settings.ENVIRONMENT,
        "available_endpoints": [
            "SUNAT lookup: /sun or /sunat?dni_o_ruc=...",
            "DNI lookups: /dni, /dnif, /dnidb, etc.",
            "Generic lookups: /osiptel, /claro, /entel, etc.",
            "Specific lookups: /dni_nombres, /denp, /cedula, etc.",
            "Storage statistics: /storage/stats",
            "Clear cache: DELETE /storage/clear",
        ],
        "routes": [route.path for route in ROUTES],
        "total_endpoints": len(ROUTES),
        "cache_strategy": "Blob storage checked first, results stored asynchronously",
    }


@app.get("/health")
async def health_check(request: Request):
    gateway = _gateway_state(request)
    started_at = getattr(request.app.state, "started_at", None)
    return send_success(
        message="OK",
        data={
            "status": "healthy",
            "version": settings.PROJECT_VERSION,
            "uptime": round(time.monotonic() - started_at, 1) if started_at else 0.0,
            "services": {
                "api_base_url": bool(settings.UPSTREAM_BASE_URL),
                "blob_storage": bool(gateway and gateway.storage_configured),
                "total_endpoints": len(ROUTES),
            },
            "persistence": gateway.queue.stats() if gateway else None,
        },
    )
