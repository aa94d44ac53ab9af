"""Declarative table of lookup routes.

Every route is served by the same generic handler; an entry only says which
upstream path to call and which query parameters it needs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from lookup_gateway.core.exceptions.errors import ParameterValidationError
from lookup_gateway.services.models import LogicalRequest
from lookup_gateway.utils.keys import sanitize_route


class ParamMode(str, Enum):
    ONE_OF = "one_of"  # first present parameter wins
    ALL = "all"  # every parameter required, combined into one cache key


@dataclass(frozen=True)
class RouteSpec:
    path: str
    params: tuple[str, ...]
    mode: ParamMode = ParamMode.ONE_OF
    upstream_path: str | None = None
    # Send the value upstream under this name regardless of which alias matched
    upstream_param: str | None = None

    @property
    def target(self) -> str:
        return self.upstream_path or self.path


@dataclass(frozen=True)
class ResolvedParams:
    request: LogicalRequest
    upstream_params: dict[str, str]


def _present(query: Mapping[str, str], name: str) -> str | None:
    value = query.get(name)
    return value if value else None


def resolve_params(route: RouteSpec, query: Mapping[str, str]) -> ResolvedParams:
    """Validate query parameters for ``route`` and build the logical request.

    Raises ParameterValidationError when the required parameters are absent.
    """
    if route.mode is ParamMode.ALL:
        missing = [name for name in route.params if not _present(query, name)]
        if missing:
            raise ParameterValidationError(
                f"Missing required parameters: {', '.join(missing)}", missing
            )
        values = [query[name] for name in route.params]
        return ResolvedParams(
            request=LogicalRequest(
                route=route.path,
                param_name="_".join(route.params),
                param_value="_".join(values),
            ),
            upstream_params=dict(zip(route.params, values)),
        )

    for name in route.params:
        value = _present(query, name)
        if value:
            param_name = route.upstream_param or name
            return ResolvedParams(
                request=LogicalRequest(route=route.path, param_name=param_name, param_value=value),
                upstream_params={param_name: value},
            )

    if len(route.params) == 1:
        message = f"{route.params[0]} is required"
    else:
        message = f"One of the following parameters is required: {', '.join(route.params)}"
    raise ParameterValidationError(message, list(route.params))


DNI_ROUTES = (
    "dni", "dnif", "dnidb", "dnifdb", "c4", "dnivaz", "dnivam", "dnivel",
    "dniveln", "fa", "fadb", "fb", "fbdb", "cnv", "cdef", "antpen",
    "antpol", "antjud", "actancc", "actamcc", "actadcc", "tra", "sue",
    "cla", "sune", "cun", "colp", "mine", "afp", "antpenv", "dend",
    "meta", "fis", "det", "rqh", "agv", "agvp",
)

DNI_OR_QUERY_ROUTES = ("osiptel", "claro", "entel", "pro", "sen", "sbs", "seeker", "bdir")

ROUTES: tuple[RouteSpec, ...] = (
    RouteSpec("/sun", ("dni_o_ruc", "query"), upstream_param="dni_o_ruc"),
    RouteSpec("/sunat", ("dni_o_ruc", "query"), upstream_path="/sun", upstream_param="dni_o_ruc"),
    *(RouteSpec(f"/{name}", ("dni",)) for name in DNI_ROUTES),
    *(RouteSpec(f"/{name}", ("dni", "query")) for name in DNI_OR_QUERY_ROUTES),
    RouteSpec("/pasaporte", ("dni", "pasaporte")),
    RouteSpec("/tremp", ("query",)),
    RouteSpec("/dni_nombres", ("apepaterno", "apematerno"), mode=ParamMode.ALL),
    RouteSpec("/venezolanos_nombres", ("query",)),
    RouteSpec("/dence", ("carnet_extranjeria",)),
    RouteSpec("/denpas", ("pasaporte",)),
    RouteSpec("/denci", ("cedula_identidad",)),
    RouteSpec("/denp", ("placa",)),
    RouteSpec("/denar", ("serie_armamento",)),
    RouteSpec("/dencl", ("clave_denuncia",)),
    RouteSpec("/cedula", ("cedula",)),
    RouteSpec("/fisdet", ("caso", "distritojudicial", "dni", "query")),
)


def check_route_table(routes: tuple[RouteSpec, ...]) -> None:
    """Refuse tables where two routes would share a storage directory."""
    seen: dict[str, str] = {}
    for route in routes:
        directory = sanitize_route(route.path)
        if directory in seen:
            raise ValueError(
                f"Routes {seen[directory]} and {route.path} share storage prefix '{directory}'"
            )
        seen[directory] = route.path


check_route_table(ROUTES)
