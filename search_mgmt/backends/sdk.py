"""Generated-SDK backend for the search management surface.

Concrete ``SearchManagementBackend`` built on ``azure-mgmt-search`` (search
services and keys) and ``azure-mgmt-resource`` (subscription data and
provider registration).  It wraps the same REST surface as
``RestManagementBackend``; SDK models are converted into this package's
own frozen dataclasses so callers never see SDK types.

Long-running SDK operations are started with ``polling=False``: waiting
is the job of ``search_mgmt.polling``, not of the SDK's own poller.

The SDK clients pin their own API versions; the ``*_API_VERSION``
settings only affect the REST backend.

References:
    https://learn.microsoft.com/python/api/azure-mgmt-search/
    https://learn.microsoft.com/python/api/azure-mgmt-resource/
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.mgmt.resource import ResourceManagementClient, SubscriptionClient
from azure.mgmt.search import SearchManagementClient
from azure.mgmt.search.models import SearchService as SdkSearchService
from azure.mgmt.search.models import SearchServiceUpdate, Sku

from search_mgmt.auth.credentials import CredentialProvider
from search_mgmt.backends.base import (
    ArmTransportError,
    SearchManagementBackend,
    error_for_status,
)
from search_mgmt.core.constants import SEARCH_PROVIDER_NAMESPACE
from search_mgmt.models.provisioning import ProvisioningState
from search_mgmt.models.search_service import (
    AdminKeys,
    ProviderRegistration,
    QueryKey,
    SearchService,
    scale_properties,
    validate_service_name,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from search_mgmt.core.config import ManagementConfig
    from search_mgmt.models.search_service import AdminKeyKind, SearchServiceSpec

logger = logging.getLogger(__name__)


class SdkManagementBackend(SearchManagementBackend):
    """Management backend using the Azure management SDKs.

    Args:
        config: Management configuration (subscription id is required).
        credentials: Credential owner; built from ``config`` when omitted.
        search_client: Optional pre-built ``SearchManagementClient``.
        resource_client: Optional pre-built ``ResourceManagementClient``.
        subscription_client: Optional pre-built ``SubscriptionClient``.
    """

    name = "sdk"

    def __init__(
        self,
        config: ManagementConfig,
        credentials: CredentialProvider | None = None,
        *,
        search_client: Any | None = None,
        resource_client: Any | None = None,
        subscription_client: Any | None = None,
    ) -> None:
        super().__init__(config)
        self._subscription_id = config.require_subscription()
        self._credentials = credentials or CredentialProvider.from_config(config)
        credential = self._credentials.credential
        base_url = config.arm_endpoint
        self._search = search_client or SearchManagementClient(
            credential, self._subscription_id, base_url=base_url
        )
        self._resources = resource_client or ResourceManagementClient(
            credential, self._subscription_id, base_url=base_url
        )
        self._subscriptions = subscription_client or SubscriptionClient(
            credential, base_url=base_url
        )

    # ------------------------------------------------------------------
    # Subscription and provider registration
    # ------------------------------------------------------------------

    def get_subscription(self) -> dict[str, Any]:
        with self._translate_errors("get_subscription"):
            subscription = self._subscriptions.subscriptions.get(self._subscription_id)
        return subscription.as_dict()

    def register_provider(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        with self._translate_errors(f"register_provider({namespace})"):
            provider = self._resources.providers.register(namespace)
        registration = _registration_from_sdk(provider, namespace)
        logger.info(
            "Provider registration requested | namespace=%s | state=%s",
            registration.namespace,
            registration.registration_state,
        )
        return registration

    def get_provider_registration(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        with self._translate_errors(f"get_provider_registration({namespace})"):
            provider = self._resources.providers.get(namespace)
        return _registration_from_sdk(provider, namespace)

    # ------------------------------------------------------------------
    # Search services
    # ------------------------------------------------------------------

    def list_services(self, resource_group: str) -> list[SearchService]:
        with self._translate_errors(f"list_services({resource_group})"):
            services = list(self._search.services.list_by_resource_group(resource_group))
        return [_service_from_sdk(service) for service in services]

    def get_service(self, resource_group: str, name: str) -> SearchService:
        with self._translate_errors(f"get_service({name})"):
            service = self._search.services.get(resource_group, name)
        return _service_from_sdk(service)

    def create_or_update_service(
        self, resource_group: str, name: str, spec: SearchServiceSpec
    ) -> SearchService:
        validate_service_name(name)
        model = SdkSearchService(
            location=spec.location,
            sku=Sku(name=spec.sku),
            replica_count=spec.replica_count,
            partition_count=spec.partition_count,
            hosting_mode=spec.hosting_mode,
            tags=dict(spec.tags) or None,
        )
        with self._translate_errors(f"create_or_update_service({name})"):
            poller = self._search.services.begin_create_or_update(
                resource_group, name, model, polling=False
            )
            created = poller.result()
        service = _service_from_sdk(created)
        logger.info(
            "Search service create/update accepted | service=%s | sku=%s | state=%s",
            service.name,
            service.sku,
            service.provisioning_state.value,
        )
        return service

    def scale_service(
        self,
        resource_group: str,
        name: str,
        *,
        replica_count: int | None = None,
        partition_count: int | None = None,
    ) -> SearchService:
        properties = scale_properties(replica_count, partition_count)
        update = SearchServiceUpdate(
            replica_count=properties.get("replicaCount"),
            partition_count=properties.get("partitionCount"),
        )
        with self._translate_errors(f"scale_service({name})"):
            service = self._search.services.update(resource_group, name, update)
        return _service_from_sdk(service)

    def delete_service(self, resource_group: str, name: str) -> None:
        with self._translate_errors(f"delete_service({name})"):
            self._search.services.delete(resource_group, name)
        logger.info("Search service deleted | service=%s | rg=%s", name, resource_group)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def list_admin_keys(self, resource_group: str, name: str) -> AdminKeys:
        with self._translate_errors(f"list_admin_keys({name})"):
            result = self._search.admin_keys.get(resource_group, name)
        return AdminKeys(primary_key=result.primary_key, secondary_key=result.secondary_key)

    def regenerate_admin_key(
        self, resource_group: str, name: str, kind: AdminKeyKind
    ) -> AdminKeys:
        with self._translate_errors(f"regenerate_admin_key({name}, {kind.value})"):
            result = self._search.admin_keys.regenerate(resource_group, name, kind.value)
        return AdminKeys(primary_key=result.primary_key, secondary_key=result.secondary_key)

    def create_query_key(self, resource_group: str, name: str, key_name: str) -> QueryKey:
        with self._translate_errors(f"create_query_key({name}, {key_name})"):
            result = self._search.query_keys.create(resource_group, name, key_name)
        return QueryKey(name=result.name or "", key=result.key)

    def list_query_keys(self, resource_group: str, name: str) -> list[QueryKey]:
        with self._translate_errors(f"list_query_keys({name})"):
            results = list(self._search.query_keys.list_by_search_service(resource_group, name))
        return [QueryKey(name=result.name or "", key=result.key) for result in results]

    def delete_query_key(self, resource_group: str, name: str, key: str) -> None:
        with self._translate_errors(f"delete_query_key({name})"):
            self._search.query_keys.delete(resource_group, name, key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        for client in (self._search, self._resources, self._subscriptions):
            client.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Re-raise ``azure-core`` exceptions as ``BackendError`` subclasses."""
        try:
            yield
        except (ServiceRequestError, ServiceResponseError) as exc:
            msg = f"{operation} failed: {exc.message}"
            raise ArmTransportError(self.name, msg) from exc
        except HttpResponseError as exc:
            error = getattr(exc, "error", None)
            status_code = exc.status_code or 0
            if not status_code and isinstance(exc, ClientAuthenticationError):
                status_code = 401
            msg = f"{operation} failed with {status_code}: {exc.message}"
            raise error_for_status(
                self.name,
                status_code,
                msg,
                error_code=str(getattr(error, "code", "") or ""),
            ) from exc


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _enum_value(value: object) -> str:
    """Return the plain string behind an SDK enum (or the value itself)."""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def _service_from_sdk(service: Any) -> SearchService:
    """Convert an ``azure.mgmt.search.models.SearchService``."""
    sku = getattr(service, "sku", None)
    return SearchService(
        name=service.name,
        location=service.location or "",
        sku=_enum_value(getattr(sku, "name", None)),
        replica_count=service.replica_count or 0,
        partition_count=service.partition_count or 0,
        status=_enum_value(service.status),
        provisioning_state=ProvisioningState.parse(_enum_value(service.provisioning_state)),
        id=service.id or "",
        hosting_mode=_enum_value(service.hosting_mode),
        tags=dict(service.tags or {}),
    )


def _registration_from_sdk(provider: Any, namespace: str) -> ProviderRegistration:
    """Convert an ``azure.mgmt.resource.resources.models.Provider``."""
    return ProviderRegistration(
        namespace=provider.namespace or namespace,
        registration_state=provider.registration_state or "",
    )
