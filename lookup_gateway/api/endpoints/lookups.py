from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask

from lookup_gateway.api.route_table import ROUTES, ParamMode, RouteSpec, resolve_params
from lookup_gateway.core.dependencies import GatewayDependency

router = APIRouter(tags=["Lookups"])


def _describe(route: RouteSpec) -> str:
    if route.mode is ParamMode.ALL:
        return f"Requires all of: {', '.join(route.params)}"
    if len(route.params) == 1:
        return f"Requires: {route.params[0]}"
    return f"Requires one of: {', '.join(route.params)}"


def make_lookup_handler(route: RouteSpec):
    async def lookup(request: Request, gateway: GatewayDependency):
        resolved = resolve_params(route, request.query_params)
        outcome = await gateway.coordinator.handle(
            resolved.request, route.target, resolved.upstream_params
        )
        background = None
        if outcome.persist_job is not None:
            # runs after the body has been sent
            background = BackgroundTask(gateway.queue.schedule, outcome.persist_job)
        return JSONResponse(
            content=outcome.value,
            headers={"X-Cache": "HIT" if outcome.from_cache else "MISS"},
            background=background,
        )

    lookup.__name__ = f"lookup_{route.path.strip('/')}"
    return lookup


for route_spec in ROUTES:
    router.add_api_route(
        route_spec.path,
        make_lookup_handler(route_spec),
        methods=["GET"],
        summary=f"Lookup {route_spec.path}",
        description=_describe(route_spec),
    )
