"""Typed models for the ``Microsoft.Search`` management surface.

Defines the data structures exchanged between callers and the
management backends:

- ``SearchServiceSpec``: Desired configuration for create/update
- ``SearchService``: A search service as reported by ARM
- ``AdminKeys`` / ``QueryKey``: API key material
- ``AdminKeyKind``: Which admin key to regenerate
- ``ProviderRegistration``: Registration status of a resource provider

ARM JSON is decoded with ``from_arm`` helpers rather than by the
backends themselves, so that the REST and SDK backends share one shape.

References:
    https://learn.microsoft.com/rest/api/searchmanagement/services
    https://learn.microsoft.com/rest/api/searchmanagement/admin-keys
    https://learn.microsoft.com/rest/api/searchmanagement/query-keys
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any

from search_mgmt.core.constants import (
    HOSTING_MODES,
    MAX_REPLICA_COUNT,
    MIN_REPLICA_COUNT,
    PARTITION_COUNTS,
    SEARCH_SERVICE_TYPE,
    SERVICE_NAME_MAX_LENGTH,
    SERVICE_NAME_MIN_LENGTH,
    SKU_NAMES,
)
from search_mgmt.core.exceptions import ContractError
from search_mgmt.models._validation import (
    ModelValidationError,
    check_non_empty,
    check_range,
)
from search_mgmt.models.provisioning import ProvisioningState

_SERVICE_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def validate_service_name(name: str) -> str:
    """Return *name* if it is a valid search service name.

    Names are 2-60 characters of lowercase letters, digits and dashes,
    with no leading, trailing or consecutive dashes.

    Raises:
        ModelValidationError: If the name breaks any of the rules.
    """
    if not SERVICE_NAME_MIN_LENGTH <= len(name) <= SERVICE_NAME_MAX_LENGTH:
        raise ModelValidationError(
            "SearchService",
            "name",
            name,
            f"must be {SERVICE_NAME_MIN_LENGTH}-{SERVICE_NAME_MAX_LENGTH} characters",
        )
    if not _SERVICE_NAME_RE.match(name):
        raise ModelValidationError(
            "SearchService",
            "name",
            name,
            "must contain only lowercase letters, digits and single inner dashes",
        )
    return name


def _check_sku(model: str, sku: str) -> None:
    if sku not in SKU_NAMES:
        raise ModelValidationError(
            model, "sku", sku, f"must be one of {', '.join(sorted(SKU_NAMES))}"
        )


def _check_partition_count(model: str, value: int) -> None:
    if value not in PARTITION_COUNTS:
        allowed = ", ".join(str(p) for p in PARTITION_COUNTS)
        raise ModelValidationError(model, "partition_count", value, f"must be one of {allowed}")


# ---------------------------------------------------------------------------
# Search service
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SearchServiceSpec:
    """Desired configuration of a search service.

    Attributes:
        location: Azure region display name or short name (e.g. ``"West US"``).
        sku: Pricing tier (``"free"``, ``"basic"``, ``"standard"``, ...).
        replica_count: Number of replicas (1-12).
        partition_count: Number of partitions (1, 2, 3, 4, 6 or 12).
        hosting_mode: ``"default"`` or ``"highDensity"`` (standard3 only).
        tags: Resource tags.
    """

    location: str
    sku: str = "free"
    replica_count: int = 1
    partition_count: int = 1
    hosting_mode: str = "default"
    tags: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        check_non_empty("SearchServiceSpec", "location", self.location)
        _check_sku("SearchServiceSpec", self.sku)
        check_range(
            "SearchServiceSpec",
            "replica_count",
            self.replica_count,
            MIN_REPLICA_COUNT,
            MAX_REPLICA_COUNT,
        )
        _check_partition_count("SearchServiceSpec", self.partition_count)
        if self.hosting_mode not in HOSTING_MODES:
            raise ModelValidationError(
                "SearchServiceSpec",
                "hosting_mode",
                self.hosting_mode,
                f"must be one of {', '.join(sorted(HOSTING_MODES))}",
            )

    def to_arm_body(self) -> dict[str, Any]:
        """Return the JSON body for a ``PUT searchServices/{name}`` request."""
        body: dict[str, Any] = {
            "type": SEARCH_SERVICE_TYPE,
            "location": self.location,
            "sku": {"name": self.sku},
            "properties": {
                "replicaCount": self.replica_count,
                "partitionCount": self.partition_count,
                "hostingMode": self.hosting_mode,
            },
        }
        if self.tags:
            body["tags"] = dict(self.tags)
        return body


@dataclass(frozen=True, slots=True)
class SearchService:
    """A search service as reported by Azure Resource Manager.

    Attributes:
        name: Service name (unique across Azure).
        location: Region the service lives in.
        sku: Pricing tier name.
        replica_count: Current replica count.
        partition_count: Current partition count.
        status: Service status (``"running"``, ``"provisioning"``, ...).
        provisioning_state: Decoded ``properties.provisioningState``.
        id: Full ARM resource id.
        hosting_mode: Hosting mode.
        tags: Resource tags.
    """

    name: str
    location: str = ""
    sku: str = ""
    replica_count: int = 0
    partition_count: int = 0
    status: str = ""
    provisioning_state: ProvisioningState = ProvisioningState.UNKNOWN
    id: str = ""
    hosting_mode: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        check_non_empty("SearchService", "name", self.name)

    @classmethod
    def from_arm(cls, body: dict[str, Any]) -> SearchService:
        """Decode an ARM ``searchServices`` resource body.

        Raises:
            ContractError: If *body* is not an object or has no ``name``.
        """
        if not isinstance(body, dict):
            msg = f"Search service body must be an object, got {type(body).__name__}"
            raise ContractError(msg, stage="decode", code="INVALID_SERVICE_BODY")
        name = str(body.get("name") or "")
        if not name:
            msg = "Search service body has no 'name'"
            raise ContractError(msg, stage="decode", code="INVALID_SERVICE_BODY")

        properties = body.get("properties") or {}
        sku = body.get("sku") or properties.get("sku") or {}
        return cls(
            name=name,
            location=str(body.get("location") or ""),
            sku=str(sku.get("name") or "") if isinstance(sku, dict) else str(sku),
            replica_count=int(properties.get("replicaCount") or 0),
            partition_count=int(properties.get("partitionCount") or 0),
            status=str(properties.get("status") or ""),
            provisioning_state=ProvisioningState.parse(properties.get("provisioningState")),
            id=str(body.get("id") or ""),
            hosting_mode=str(properties.get("hostingMode") or ""),
            tags={str(k): str(v) for k, v in (body.get("tags") or {}).items()},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-friendly dict."""
        return {
            "name": self.name,
            "id": self.id,
            "location": self.location,
            "sku": self.sku,
            "replica_count": self.replica_count,
            "partition_count": self.partition_count,
            "status": self.status,
            "provisioning_state": self.provisioning_state.value,
            "hosting_mode": self.hosting_mode,
            "tags": dict(self.tags),
        }


def scale_properties(
    replica_count: int | None = None, partition_count: int | None = None
) -> dict[str, int]:
    """Validate a scale request and return its ARM ``properties`` fragment.

    Raises:
        ModelValidationError: If neither count is given or a count is out of range.
    """
    if replica_count is None and partition_count is None:
        raise ModelValidationError(
            "ServiceScale", "replica_count", None, "replica_count or partition_count is required"
        )
    properties: dict[str, int] = {}
    if replica_count is not None:
        check_range(
            "ServiceScale", "replica_count", replica_count, MIN_REPLICA_COUNT, MAX_REPLICA_COUNT
        )
        properties["replicaCount"] = replica_count
    if partition_count is not None:
        _check_partition_count("ServiceScale", partition_count)
        properties["partitionCount"] = partition_count
    return properties


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class AdminKeyKind(enum.Enum):
    """Which admin API key to regenerate."""

    PRIMARY = "primary"
    SECONDARY = "secondary"

    @classmethod
    def parse(cls, value: str) -> AdminKeyKind:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ModelValidationError(
                "AdminKeyKind", "kind", value, "must be 'primary' or 'secondary'"
            ) from None


@dataclass(frozen=True, slots=True)
class AdminKeys:
    """Primary and secondary admin API keys of a search service."""

    primary_key: str = field(repr=False)
    secondary_key: str = field(repr=False)

    @classmethod
    def from_arm(cls, body: dict[str, Any]) -> AdminKeys:
        if not isinstance(body, dict) or "primaryKey" not in body or "secondaryKey" not in body:
            msg = "Admin key body must contain 'primaryKey' and 'secondaryKey'"
            raise ContractError(msg, stage="decode", code="INVALID_ADMIN_KEYS_BODY")
        return cls(primary_key=str(body["primaryKey"]), secondary_key=str(body["secondaryKey"]))

    def to_dict(self) -> dict[str, str]:
        return {"primary_key": self.primary_key, "secondary_key": self.secondary_key}


@dataclass(frozen=True, slots=True)
class QueryKey:
    """A named, read-only query API key of a search service."""

    name: str
    key: str = field(repr=False)

    @classmethod
    def from_arm(cls, body: dict[str, Any]) -> QueryKey:
        if not isinstance(body, dict) or "key" not in body:
            msg = "Query key body must contain 'key'"
            raise ContractError(msg, stage="decode", code="INVALID_QUERY_KEY_BODY")
        return cls(name=str(body.get("name") or ""), key=str(body["key"]))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "key": self.key}


# ---------------------------------------------------------------------------
# Resource provider registration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProviderRegistration:
    """Registration status of a resource provider in a subscription.

    Attributes:
        namespace: Provider namespace (e.g. ``"Microsoft.Search"``).
        registration_state: Raw state string (``"Registering"``, ``"Registered"``, ...).
    """

    namespace: str
    registration_state: str = ""

    @property
    def state(self) -> ProvisioningState:
        """Registration state decoded into a ``ProvisioningState``."""
        return ProvisioningState.parse(self.registration_state)

    @classmethod
    def from_arm(cls, body: dict[str, Any]) -> ProviderRegistration:
        if not isinstance(body, dict) or not body.get("namespace"):
            msg = "Provider body has no 'namespace'"
            raise ContractError(msg, stage="decode", code="INVALID_PROVIDER_BODY")
        return cls(
            namespace=str(body["namespace"]),
            registration_state=str(body.get("registrationState") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "namespace": self.namespace,
            "registration_state": self.registration_state,
            "state": self.state.value,
        }
