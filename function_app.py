"""Azure Functions entry point — Search service management API.

This module registers the HTTP routes using the Python v2 programming
model.

All business logic lives in the search_mgmt package. This file is purely
the wiring layer between Azure Functions bindings and application code.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any

import azure.functions as func

from search_mgmt.activities.provisioning import (
    ensure_completed,
    provision_and_wait,
    scale_and_wait,
)
from search_mgmt.backends.factory import get_backend
from search_mgmt.core.config import ManagementConfig
from search_mgmt.core.exceptions import ManagementError
from search_mgmt.core.ingress import (
    CreateServiceRequest,
    ScaleRequest,
    build_service_spec,
    error_body,
    http_status_for,
    parse_json_body,
    parse_poll_flag,
    parse_scale_request,
)
from search_mgmt.models.search_service import AdminKeyKind
from search_mgmt.utils.helpers import format_json

if TYPE_CHECKING:
    from collections.abc import Callable

    from search_mgmt.backends.base import SearchManagementBackend

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)

logger = logging.getLogger("search_mgmt.function_app")


# ---------------------------------------------------------------------------
# Shared wiring
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def _config() -> ManagementConfig:
    return ManagementConfig.from_env()


@functools.lru_cache(maxsize=1)
def _backend() -> SearchManagementBackend:
    """One backend per worker so the bearer token cache is shared."""
    config = _config()
    return get_backend(config.backend, config)


def _json_response(payload: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        format_json(payload), status_code=status_code, mimetype="application/json"
    )


def _handle(route: str, call: Callable[[], func.HttpResponse]) -> func.HttpResponse:
    """Run a route body and turn management errors into JSON error responses."""
    try:
        return call()
    except ManagementError as exc:
        status_code = http_status_for(exc)
        log = logger.warning if status_code < 500 else logger.error
        log(
            "Request failed | route=%s | status=%d | code=%s | error=%s",
            route,
            status_code,
            exc.code,
            exc.message,
        )
        return func.HttpResponse(
            error_body(exc), status_code=status_code, mimetype="application/json"
        )


# ---------------------------------------------------------------------------
# HTTP: Search services
# ---------------------------------------------------------------------------


@app.function_name("list_services")
@app.route(route="services", methods=["GET"])
def list_services(req: func.HttpRequest) -> func.HttpResponse:
    """List search services in the configured resource group."""

    def call() -> func.HttpResponse:
        return _json_response(_backend().list_services(_config().resource_group))

    return _handle("list_services", call)


@app.function_name("get_service")
@app.route(route="services/{name}", methods=["GET"])
def get_service(req: func.HttpRequest) -> func.HttpResponse:
    """Return one search service definition."""
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        return _json_response(_backend().get_service(_config().resource_group, name))

    return _handle("get_service", call)


@app.function_name("create_service")
@app.route(route="services/{name}", methods=["PUT"])
def create_service(req: func.HttpRequest) -> func.HttpResponse:
    """Create or reconfigure a search service.

    Returns ``202`` with the accepted service, or ``200`` with the poll
    result when ``?wait=true`` is given and provisioning completes.
    """
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        config = _config()
        body: CreateServiceRequest = parse_json_body(req.get_body())  # type: ignore[assignment]
        spec = build_service_spec(body, default_location=config.location)
        if not parse_poll_flag(req.params.get("wait")):
            service = _backend().create_or_update_service(config.resource_group, name, spec)
            return _json_response(service, status_code=202)
        result = provision_and_wait(
            _backend(), config.resource_group, name, spec, config.poll_policy()
        )
        return _json_response(ensure_completed(result, operation=f"provision {name}"))

    return _handle("create_service", call)


@app.function_name("scale_service")
@app.route(route="services/{name}/scale", methods=["POST"])
def scale_service(req: func.HttpRequest) -> func.HttpResponse:
    """Change replica/partition counts (``?wait=true`` waits for the update)."""
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        config = _config()
        body: ScaleRequest = parse_json_body(req.get_body())  # type: ignore[assignment]
        replicas, partitions = parse_scale_request(body)
        if not parse_poll_flag(req.params.get("wait")):
            service = _backend().scale_service(
                config.resource_group,
                name,
                replica_count=replicas,
                partition_count=partitions,
            )
            return _json_response(service, status_code=202)
        result = scale_and_wait(
            _backend(),
            config.resource_group,
            name,
            config.poll_policy(),
            replica_count=replicas,
            partition_count=partitions,
        )
        return _json_response(ensure_completed(result, operation=f"scale {name}"))

    return _handle("scale_service", call)


@app.function_name("delete_service")
@app.route(route="services/{name}", methods=["DELETE"])
def delete_service(req: func.HttpRequest) -> func.HttpResponse:
    """Delete a search service."""
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        _backend().delete_service(_config().resource_group, name)
        return func.HttpResponse(status_code=204)

    return _handle("delete_service", call)


# ---------------------------------------------------------------------------
# HTTP: Keys
# ---------------------------------------------------------------------------


@app.function_name("list_admin_keys")
@app.route(route="services/{name}/adminkeys", methods=["GET"])
def list_admin_keys(req: func.HttpRequest) -> func.HttpResponse:
    """Return the primary and secondary admin keys."""
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        return _json_response(_backend().list_admin_keys(_config().resource_group, name))

    return _handle("list_admin_keys", call)


@app.function_name("regenerate_admin_key")
@app.route(route="services/{name}/adminkeys/{kind}/regenerate", methods=["POST"])
def regenerate_admin_key(req: func.HttpRequest) -> func.HttpResponse:
    """Regenerate the primary or secondary admin key."""
    name = req.route_params.get("name", "")
    kind = req.route_params.get("kind", "")

    def call() -> func.HttpResponse:
        keys = _backend().regenerate_admin_key(
            _config().resource_group, name, AdminKeyKind.parse(kind)
        )
        return _json_response(keys)

    return _handle("regenerate_admin_key", call)


@app.function_name("list_query_keys")
@app.route(route="services/{name}/querykeys", methods=["GET"])
def list_query_keys(req: func.HttpRequest) -> func.HttpResponse:
    """List the query keys of a search service."""
    name = req.route_params.get("name", "")

    def call() -> func.HttpResponse:
        return _json_response(_backend().list_query_keys(_config().resource_group, name))

    return _handle("list_query_keys", call)


@app.function_name("create_query_key")
@app.route(route="services/{name}/querykeys/{key_name}", methods=["POST"])
def create_query_key(req: func.HttpRequest) -> func.HttpResponse:
    """Create a named query key."""
    name = req.route_params.get("name", "")
    key_name = req.route_params.get("key_name", "")

    def call() -> func.HttpResponse:
        key = _backend().create_query_key(_config().resource_group, name, key_name)
        return _json_response(key, status_code=201)

    return _handle("create_query_key", call)


@app.function_name("delete_query_key")
@app.route(route="services/{name}/querykeys/{key}", methods=["DELETE"])
def delete_query_key(req: func.HttpRequest) -> func.HttpResponse:
    """Delete a query key by its key value."""
    name = req.route_params.get("name", "")
    key = req.route_params.get("key", "")

    def call() -> func.HttpResponse:
        _backend().delete_query_key(_config().resource_group, name, key)
        return func.HttpResponse(status_code=204)

    return _handle("delete_query_key", call)
