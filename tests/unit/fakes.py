"""Deterministic test doubles shared by the unit tests.

- ``FakeClock``: virtual time that advances only when the poller sleeps
- ``ScriptedAccessor``: returns (or raises) a scripted sequence of states
- ``InMemoryBackend``: a ``SearchManagementBackend`` with no network
"""

from __future__ import annotations

import dataclasses
from typing import Any

from search_mgmt.backends.base import ResourceNotFoundError, SearchManagementBackend
from search_mgmt.core.config import ManagementConfig
from search_mgmt.models.provisioning import ProvisioningState
from search_mgmt.models.search_service import (
    AdminKeyKind,
    AdminKeys,
    ProviderRegistration,
    QueryKey,
    SearchService,
    SearchServiceSpec,
    scale_properties,
    validate_service_name,
)
from search_mgmt.polling.clock import CancellationToken, Clock


class FakeClock(Clock):
    """Virtual clock; ``sleep`` advances time instantly and is recorded."""

    def __init__(self, start: float = 0.0) -> None:
        self.time = start
        self.sleeps: list[float] = []
        self.on_sleep: Any = None

    def now(self) -> float:
        return self.time

    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> None:
        self.sleeps.append(seconds)
        self.time += seconds
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps))


class ScriptedAccessor:
    """Return the scripted items in order; exceptions in the script are raised.

    The last item repeats once the script is exhausted.
    """

    def __init__(self, *script: ProvisioningState | str | Exception) -> None:
        self._script = list(script)
        self.calls = 0

    def __call__(self) -> ProvisioningState | str:
        item = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class TimedAccessor:
    """Reports InProgress until ``clock.now()`` reaches ``ready_at``."""

    def __init__(self, clock: FakeClock, ready_at: float) -> None:
        self._clock = clock
        self._ready_at = ready_at
        self.calls = 0

    def __call__(self) -> ProvisioningState:
        self.calls += 1
        if self._clock.now() >= self._ready_at:
            return ProvisioningState.SUCCEEDED
        return ProvisioningState.IN_PROGRESS


class InMemoryBackend(SearchManagementBackend):
    """Backend keeping services, keys and registrations in dictionaries.

    ``provisioning_script`` lists the provisioning states ``get_service``
    reports for a newly created or scaled service, one per call; the last
    state repeats.  ``fail`` maps an operation name to an exception it raises.
    """

    name = "memory"

    def __init__(
        self,
        config: ManagementConfig | None = None,
        credentials: object = None,
        *,
        provisioning_script: list[str] | None = None,
        registration_script: list[str] | None = None,
    ) -> None:
        super().__init__(config or ManagementConfig(subscription_id="sub-123"))
        self.services: dict[tuple[str, str], SearchService] = {}
        self.admin_keys: dict[str, AdminKeys] = {}
        self.query_keys: dict[str, list[QueryKey]] = {}
        self.provisioning_script = provisioning_script or ["succeeded"]
        self.registration_script = registration_script or ["Registered"]
        self.fail: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.closed = False
        self._service_reads: dict[str, int] = {}
        self._registration_reads = 0
        self._key_counter = 0

    # Helpers -----------------------------------------------------------

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail:
            raise self.fail[operation]

    def _new_key(self) -> str:
        self._key_counter += 1
        return f"key-{self._key_counter:04d}"

    def _require(self, resource_group: str, name: str) -> SearchService:
        service = self.services.get((resource_group, name))
        if service is None:
            msg = f"search service {name} not found"
            raise ResourceNotFoundError(self.name, msg, status_code=404)
        return service

    def _with_state(self, service: SearchService, state: str, **changes: Any) -> SearchService:
        return dataclasses.replace(
            service, provisioning_state=ProvisioningState.parse(state), **changes
        )

    # Operations --------------------------------------------------------

    def get_subscription(self) -> dict[str, Any]:
        self._record("get_subscription")
        return {"subscriptionId": self._config.subscription_id, "state": "Enabled"}

    def register_provider(self, namespace: str = "Microsoft.Search") -> ProviderRegistration:
        self._record("register_provider")
        return ProviderRegistration(namespace=namespace, registration_state="Registering")

    def get_provider_registration(
        self, namespace: str = "Microsoft.Search"
    ) -> ProviderRegistration:
        self._record("get_provider_registration")
        script = self.registration_script
        state = script[min(self._registration_reads, len(script) - 1)]
        self._registration_reads += 1
        return ProviderRegistration(namespace=namespace, registration_state=state)

    def list_services(self, resource_group: str) -> list[SearchService]:
        self._record("list_services")
        return [svc for (rg, _), svc in self.services.items() if rg == resource_group]

    def get_service(self, resource_group: str, name: str) -> SearchService:
        self._record("get_service")
        service = self._require(resource_group, name)
        reads = self._service_reads.get(name, 0)
        script = self.provisioning_script
        state = script[min(reads, len(script) - 1)]
        self._service_reads[name] = reads + 1
        service = self._with_state(service, state)
        self.services[(resource_group, name)] = service
        return service

    def create_or_update_service(
        self, resource_group: str, name: str, spec: SearchServiceSpec
    ) -> SearchService:
        self._record("create_or_update_service")
        validate_service_name(name)
        service = SearchService(
            name=name,
            location=spec.location,
            sku=spec.sku,
            replica_count=spec.replica_count,
            partition_count=spec.partition_count,
            status="provisioning",
            provisioning_state=ProvisioningState.IN_PROGRESS,
            id=f"/subscriptions/sub-123/resourceGroups/{resource_group}/providers/"
            f"Microsoft.Search/searchServices/{name}",
            hosting_mode=spec.hosting_mode,
            tags=dict(spec.tags),
        )
        self.services[(resource_group, name)] = service
        self._service_reads[name] = 0
        self.admin_keys[name] = AdminKeys(primary_key=self._new_key(), secondary_key=self._new_key())
        self.query_keys[name] = [QueryKey(name="", key=self._new_key())]
        return service

    def scale_service(
        self,
        resource_group: str,
        name: str,
        *,
        replica_count: int | None = None,
        partition_count: int | None = None,
    ) -> SearchService:
        self._record("scale_service")
        properties = scale_properties(replica_count, partition_count)
        service = self._require(resource_group, name)
        service = self._with_state(
            service,
            "updating",
            replica_count=properties.get("replicaCount", service.replica_count),
            partition_count=properties.get("partitionCount", service.partition_count),
        )
        self.services[(resource_group, name)] = service
        self._service_reads[name] = 0
        return service

    def delete_service(self, resource_group: str, name: str) -> None:
        self._record("delete_service")
        self._require(resource_group, name)
        del self.services[(resource_group, name)]

    def list_admin_keys(self, resource_group: str, name: str) -> AdminKeys:
        self._record("list_admin_keys")
        self._require(resource_group, name)
        return self.admin_keys[name]

    def regenerate_admin_key(
        self, resource_group: str, name: str, kind: AdminKeyKind
    ) -> AdminKeys:
        self._record("regenerate_admin_key")
        self._require(resource_group, name)
        keys = self.admin_keys[name]
        if kind is AdminKeyKind.PRIMARY:
            keys = AdminKeys(primary_key=self._new_key(), secondary_key=keys.secondary_key)
        else:
            keys = AdminKeys(primary_key=keys.primary_key, secondary_key=self._new_key())
        self.admin_keys[name] = keys
        return keys

    def create_query_key(self, resource_group: str, name: str, key_name: str) -> QueryKey:
        self._record("create_query_key")
        self._require(resource_group, name)
        key = QueryKey(name=key_name, key=self._new_key())
        self.query_keys[name].append(key)
        return key

    def list_query_keys(self, resource_group: str, name: str) -> list[QueryKey]:
        self._record("list_query_keys")
        self._require(resource_group, name)
        return list(self.query_keys[name])

    def delete_query_key(self, resource_group: str, name: str, key: str) -> None:
        self._record("delete_query_key")
        self._require(resource_group, name)
        self.query_keys[name] = [k for k in self.query_keys[name] if k.key != key]

    def close(self) -> None:
        self.closed = True
