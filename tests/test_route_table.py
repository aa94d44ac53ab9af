import pytest

from lookup_gateway.api.route_table import (
    ROUTES,
    ParamMode,
    RouteSpec,
    check_route_table,
    resolve_params,
)
from lookup_gateway.core.exceptions.errors import ParameterValidationError


def _spec(path):
    return next(route for route in ROUTES if route.path == path)


def test_every_original_route_is_declared():
    paths = {route.path for route in ROUTES}
    for expected in ("/sun", "/sunat", "/dni", "/agvp", "/osiptel", "/pasaporte",
                     "/dni_nombres", "/fisdet", "/cedula"):
        assert expected in paths
    assert len(ROUTES) == 59


def test_one_of_takes_first_present_parameter():
    resolved = resolve_params(_spec("/fisdet"), {"dni": "12345678", "query": "x"})
    assert resolved.request.param_name == "dni"
    assert resolved.upstream_params == {"dni": "12345678"}


def test_pasaporte_keeps_the_matched_parameter_name():
    resolved = resolve_params(_spec("/pasaporte"), {"pasaporte": "AB123"})
    assert resolved.request.param_name == "pasaporte"
    assert resolved.upstream_params == {"pasaporte": "AB123"}


def test_upstream_param_override():
    resolved = resolve_params(_spec("/sun"), {"query": "20123456789"})
    assert resolved.request.param_name == "dni_o_ruc"
    assert resolved.upstream_params == {"dni_o_ruc": "20123456789"}
    assert _spec("/sunat").target == "/sun"


def test_all_mode_builds_composite_request():
    resolved = resolve_params(
        _spec("/dni_nombres"), {"apematerno": "GARCIA", "apepaterno": "PEREZ"}
    )
    assert resolved.request.param_name == "apepaterno_apematerno"
    assert resolved.request.param_value == "PEREZ_GARCIA"
    assert resolved.upstream_params == {"apepaterno": "PEREZ", "apematerno": "GARCIA"}


def test_missing_single_parameter_message():
    with pytest.raises(ParameterValidationError) as excinfo:
        resolve_params(_spec("/dni"), {})
    assert excinfo.value.message == "dni is required"
    assert excinfo.value.status_code == 400


def test_missing_all_mode_parameters_are_listed():
    with pytest.raises(ParameterValidationError) as excinfo:
        resolve_params(_spec("/dni_nombres"), {})
    assert excinfo.value.params == ["apepaterno", "apematerno"]


def test_duplicate_storage_prefix_is_refused():
    routes = (
        RouteSpec("/a_b", ("x",)),
        RouteSpec("/a/b", ("x",), mode=ParamMode.ONE_OF),
    )
    with pytest.raises(ValueError):
        check_route_table(routes)
