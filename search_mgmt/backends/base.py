"""SearchManagementBackend abstract base class.

Defines the contract that every management backend must implement.
Activities and surfaces interact exclusively with this interface — they
never know which transport is behind it.

Operations follow the call sequence of the console walkthrough:

    1. ``get_subscription()``                      — subscription data
    2. ``register_provider()``                     — register ``Microsoft.Search``
    3. ``list_services(rg)``                       — services in a resource group
    4. ``create_or_update_service(rg, name, spec)`` — create / reconfigure
    5. ``get_service(rg, name)``                   — service definition
    6. ``list_admin_keys`` / ``regenerate_admin_key``
    7. ``create_query_key`` / ``list_query_keys`` / ``delete_query_key``
    8. ``scale_service(rg, name, ...)``            — replica/partition change
    9. ``delete_service(rg, name)``

Each concrete backend (``RestManagementBackend``, ``SdkManagementBackend``)
implements these against its transport.  The state accessors used by the
provisioning poller are built on top of ``get_service`` and
``get_provider_registration`` here, so they behave identically for
every backend.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

from search_mgmt.core.constants import SEARCH_PROVIDER_NAMESPACE
from search_mgmt.core.exceptions import ManagementError, PermanentError, TransientError
from search_mgmt.polling.poller import StateAccessor

if TYPE_CHECKING:
    from search_mgmt.core.config import ManagementConfig
    from search_mgmt.models.provisioning import ProvisioningState
    from search_mgmt.models.search_service import (
        AdminKeyKind,
        AdminKeys,
        ProviderRegistration,
        QueryKey,
        SearchService,
        SearchServiceSpec,
    )


class SearchManagementBackend(abc.ABC):
    """Abstract base class for search management backends.

    The constructor receives the ``ManagementConfig``; concrete backends
    additionally take whatever client or credential they need.
    """

    #: Registry name of the backend (e.g. ``"rest"``).
    name: str = ""

    def __init__(self, config: ManagementConfig) -> None:
        self._config = config

    @property
    def config(self) -> ManagementConfig:
        """Return the management configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # Abstract methods: every backend must implement these
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def get_subscription(self) -> dict[str, Any]:
        """Return general subscription information as a JSON-like dict."""

    @abc.abstractmethod
    def register_provider(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        """Register a resource provider with the subscription.

        Only needed once per subscription and provider.  Registration is
        itself asynchronous: the returned state is usually ``Registering``.
        """

    @abc.abstractmethod
    def get_provider_registration(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        """Return the current registration status of a resource provider."""

    @abc.abstractmethod
    def list_services(self, resource_group: str) -> list[SearchService]:
        """Return all search services in *resource_group*."""

    @abc.abstractmethod
    def get_service(self, resource_group: str, name: str) -> SearchService:
        """Return a single search service.

        Raises:
            ResourceNotFoundError: If the service does not exist.
        """

    @abc.abstractmethod
    def create_or_update_service(
        self, resource_group: str, name: str, spec: SearchServiceSpec
    ) -> SearchService:
        """Create a search service, or replace its configuration.

        Returns the service as reported immediately after the request; for
        paid tiers ``provisioning_state`` is typically ``IN_PROGRESS``.
        """

    @abc.abstractmethod
    def scale_service(
        self,
        resource_group: str,
        name: str,
        *,
        replica_count: int | None = None,
        partition_count: int | None = None,
    ) -> SearchService:
        """Change the replica and/or partition count of a service."""

    @abc.abstractmethod
    def delete_service(self, resource_group: str, name: str) -> None:
        """Delete a search service."""

    @abc.abstractmethod
    def list_admin_keys(self, resource_group: str, name: str) -> AdminKeys:
        """Return the primary and secondary admin API keys."""

    @abc.abstractmethod
    def regenerate_admin_key(
        self, resource_group: str, name: str, kind: AdminKeyKind
    ) -> AdminKeys:
        """Regenerate one admin key and return both keys."""

    @abc.abstractmethod
    def create_query_key(self, resource_group: str, name: str, key_name: str) -> QueryKey:
        """Create a named query API key."""

    @abc.abstractmethod
    def list_query_keys(self, resource_group: str, name: str) -> list[QueryKey]:
        """Return all query API keys of a service."""

    @abc.abstractmethod
    def delete_query_key(self, resource_group: str, name: str, key: str) -> None:
        """Delete a query API key, identified by its key value."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:  # noqa: B027
        """Release transport resources.  No-op by default."""

    def __enter__(self) -> SearchManagementBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State accessors for the provisioning poller
    # ------------------------------------------------------------------

    def service_state_accessor(self, resource_group: str, name: str) -> StateAccessor:
        """Accessor reporting a search service's ``provisioningState``."""
        return _ServiceStateAccessor(self, resource_group, name)

    def registration_state_accessor(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> StateAccessor:
        """Accessor reporting a resource provider's ``registrationState``."""
        return _RegistrationStateAccessor(self, namespace)


class _ServiceStateAccessor(StateAccessor):
    def __init__(self, backend: SearchManagementBackend, resource_group: str, name: str) -> None:
        self._backend = backend
        self._resource_group = resource_group
        self._name = name

    def get_current_state(self) -> ProvisioningState:
        return self._backend.get_service(self._resource_group, self._name).provisioning_state


class _RegistrationStateAccessor(StateAccessor):
    def __init__(self, backend: SearchManagementBackend, namespace: str) -> None:
        self._backend = backend
        self._namespace = namespace

    def get_current_state(self) -> ProvisioningState:
        return self._backend.get_provider_registration(self._namespace).state


# ---------------------------------------------------------------------------
# Backend exceptions
# ---------------------------------------------------------------------------


class BackendError(ManagementError):
    """Base exception for management backend errors.

    Attributes:
        backend: Name of the backend that raised the error.
        message: Human-readable error description.
        status_code: HTTP status code, when the error came from a response.
        error_code: ARM ``error.code`` value, when present.
        retryable: Whether the caller should retry the operation.
    """

    default_stage = "backend"
    default_code = "ARM_REQUEST_FAILED"

    def __init__(
        self,
        backend: str,
        message: str,
        *,
        status_code: int = 0,
        error_code: str = "",
        retryable: bool | None = None,
        correlation_id: str = "",
    ) -> None:
        self.backend = backend
        self.status_code = status_code
        self.error_code = error_code
        kwargs: dict[str, object] = {
            "code": self.default_code,
            "stage": self.default_stage,
            "correlation_id": correlation_id,
        }
        # Category bases (TransientError, PermanentError) supply the default.
        if retryable is not None:
            kwargs["retryable"] = retryable
        super().__init__(message, **kwargs)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return f"[{self.backend}] {self.message}"

    def error_details(self) -> dict[str, object]:
        details: dict[str, object] = {"backend": self.backend}
        if self.status_code:
            details["status_code"] = self.status_code
        if self.error_code:
            details["error_code"] = self.error_code
        return details


class ArmRequestError(BackendError):
    """ARM rejected a request (any non-success status not covered below)."""


class ArmAuthError(BackendError, PermanentError):
    """Authentication or authorisation failure (401/403)."""

    default_code = "ARM_AUTH_FAILED"


class ResourceNotFoundError(BackendError, PermanentError):
    """The addressed resource does not exist (404)."""

    default_code = "RESOURCE_NOT_FOUND"


class ArmTransportError(BackendError, TransientError):
    """Connection failure or timeout before a response was received."""

    default_code = "ARM_TRANSPORT_FAILED"


#: HTTP statuses worth retrying (throttling, timeouts, server errors).
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def error_for_status(
    backend: str,
    status_code: int,
    message: str,
    *,
    error_code: str = "",
    correlation_id: str = "",
) -> BackendError:
    """Map an HTTP failure status to the matching ``BackendError`` subclass."""
    if status_code == 404:
        return ResourceNotFoundError(
            backend,
            message,
            status_code=status_code,
            error_code=error_code,
            correlation_id=correlation_id,
        )
    if status_code in (401, 403):
        return ArmAuthError(
            backend,
            message,
            status_code=status_code,
            error_code=error_code,
            correlation_id=correlation_id,
        )
    return ArmRequestError(
        backend,
        message,
        status_code=status_code,
        error_code=error_code,
        retryable=status_code in RETRYABLE_STATUS_CODES,
        correlation_id=correlation_id,
    )
