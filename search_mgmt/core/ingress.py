"""Thin ingress boundary helpers for the HTTP entrypoints.

Centralises request-body handling so that ``function_app.py`` contains
only route bindings and handoff:

- **parse_json_body** — decodes a raw request body into a dict.
- **build_service_spec** — turns a create request into a validated
  ``SearchServiceSpec``.
- **parse_scale_request** — extracts replica/partition counts.
- **parse_poll_flag** — reads the ``wait`` query flag.
- **http_status_for** / **error_body** — error responses for failed calls.

Malformed bodies raise ``ContractError``; well-formed bodies with bad
values raise ``ModelValidationError`` from the models themselves.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, NotRequired, TypedDict

from search_mgmt.core.exceptions import ContractError, ManagementError
from search_mgmt.models.search_service import SearchServiceSpec

logger = logging.getLogger("search_mgmt.core.ingress")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateServiceRequest(TypedDict):
    """JSON body accepted by the create-service route."""

    location: NotRequired[str]
    sku: NotRequired[str]
    replica_count: NotRequired[int]
    partition_count: NotRequired[int]
    hosting_mode: NotRequired[str]
    tags: NotRequired[dict[str, str]]


class ScaleRequest(TypedDict):
    """JSON body accepted by the scale route."""

    replica_count: NotRequired[int]
    partition_count: NotRequired[int]


# ---------------------------------------------------------------------------
# Body decoding
# ---------------------------------------------------------------------------


def parse_json_body(raw: bytes | str | None) -> dict[str, Any]:
    """Decode a request body into a dict.

    An empty body decodes to ``{}``.

    Raises:
        ContractError: If the body is not valid JSON or not an object.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = f"Request body is not valid JSON: {exc}"
        raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
    if not isinstance(parsed, dict):
        msg = f"Request body must be a JSON object, got {type(parsed).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
    return parsed


def _optional_int(body: Mapping[str, Any], key: str) -> int | None:
    value = body.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"'{key}' must be an integer, got {type(value).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_FIELD_TYPE")
    return value


def _optional_str(body: Mapping[str, Any], key: str) -> str | None:
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"'{key}' must be a string, got {type(value).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_FIELD_TYPE")
    return value


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_service_spec(
    body: CreateServiceRequest, *, default_location: str
) -> SearchServiceSpec:
    """Build a ``SearchServiceSpec`` from a create request body.

    Args:
        body: Decoded request body; field types are checked here.
        default_location: Region used when the body has no ``location``.

    Raises:
        ContractError: If a field has the wrong JSON type.
        ModelValidationError: If a value is out of range.
    """
    tags = body.get("tags") or {}
    if not isinstance(tags, dict):
        msg = f"'tags' must be an object, got {type(tags).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_FIELD_TYPE")

    replica_count = _optional_int(body, "replica_count")
    partition_count = _optional_int(body, "partition_count")
    spec = SearchServiceSpec(
        location=_optional_str(body, "location") or default_location,
        sku=_optional_str(body, "sku") or "free",
        replica_count=1 if replica_count is None else replica_count,
        partition_count=1 if partition_count is None else partition_count,
        hosting_mode=_optional_str(body, "hosting_mode") or "default",
        tags={str(k): str(v) for k, v in tags.items()},
    )
    logger.debug(
        "Built service spec | location=%s | sku=%s | replicas=%d | partitions=%d",
        spec.location,
        spec.sku,
        spec.replica_count,
        spec.partition_count,
    )
    return spec


def parse_scale_request(body: ScaleRequest) -> tuple[int | None, int | None]:
    """Return ``(replica_count, partition_count)`` from a scale request body.

    Range checks happen in ``scale_properties``; this only checks JSON types.
    """
    return _optional_int(body, "replica_count"), _optional_int(body, "partition_count")


def parse_poll_flag(value: str | None) -> bool:
    """Interpret a ``?wait=`` query value (``1``/``true``/``yes`` are true)."""
    return (value or "").strip().lower() in {"1", "true", "yes"}


# ---------------------------------------------------------------------------
# Error responses
# ---------------------------------------------------------------------------


def http_status_for(exc: ManagementError) -> int:
    """Map a management exception onto an HTTP response status.

    - missing resources                          -> 404
    - malformed bodies and invalid values        -> 400
    - ARM 400/409 rejections                     -> passed through
    - incomplete provisioning                    -> 409
    - invalid app settings                       -> 500
    - transient upstream failures                -> 503
    - every other upstream or credential failure -> 502
    """
    from search_mgmt.backends.base import BackendError, ResourceNotFoundError

    if isinstance(exc, ResourceNotFoundError):
        return 404
    # ARM rejected the request itself (bad name, conflicting operation).
    if isinstance(exc, BackendError) and exc.status_code in {400, 409}:
        return exc.status_code
    if exc.category == "validation" or exc.stage in {"ingress", "model_validation"}:
        return 400
    if exc.stage == "provisioning":
        return 409
    if exc.stage == "config":
        return 500
    if exc.retryable:
        return 503
    return 502


def error_body(exc: ManagementError) -> str:
    """Serialise *exc* as the JSON body of an error response."""
    return json.dumps({"error": exc.to_error_dict()})
