from fastapi.openapi.utils import get_openapi
from lookup_gateway.api.route_table import ROUTES
from lookup_gateway.core.config import settings


def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=settings.PROJECT_VERSION,
        description=(
            f"Cache-aside gateway over {len(ROUTES)} upstream lookup routes. "
            "Results are served from blob storage when available and stored "
            "in the background after every upstream call."
        ),
        routes=app.routes,
        tags=app.openapi_tags,
    )
    openapi_schema["info"]["x-cache-strategy"] = {
        "lookup": "most recent stored object under the route prefix",
        "persistence": "asynchronous, after the response is sent",
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema
