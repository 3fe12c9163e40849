"""Hand-rolled REST backend for Azure Resource Manager.

Concrete ``SearchManagementBackend`` that issues ARM requests directly
with ``httpx`` and a bearer token from the ``CredentialProvider``.  Every
operation is a single JSON request against ``management.azure.com``.

Configuration:
    The ARM endpoint, API versions and HTTP timeout come from
    ``ManagementConfig``.  A pre-built ``httpx.Client`` may be injected
    (tests pass one backed by ``httpx.MockTransport``).

References:
    https://learn.microsoft.com/rest/api/azure/
    https://learn.microsoft.com/rest/api/searchmanagement/
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from search_mgmt.auth.credentials import CredentialProvider
from search_mgmt.backends.base import (
    ArmTransportError,
    BackendError,
    SearchManagementBackend,
    error_for_status,
)
from search_mgmt.core.constants import SEARCH_PROVIDER_NAMESPACE
from search_mgmt.core.exceptions import ContractError
from search_mgmt.models.search_service import (
    AdminKeys,
    ProviderRegistration,
    QueryKey,
    SearchService,
    scale_properties,
    validate_service_name,
)

if TYPE_CHECKING:
    from collections.abc import Generator

    from search_mgmt.core.config import ManagementConfig
    from search_mgmt.models.search_service import AdminKeyKind, SearchServiceSpec

logger = logging.getLogger(__name__)

_CORRELATION_HEADER = "x-ms-correlation-request-id"


class BearerTokenAuth(httpx.Auth):
    """httpx auth flow that attaches the provider's bearer token.

    A ``401`` response invalidates the cached token and the request is
    retried once with a freshly acquired one.
    """

    def __init__(self, credentials: CredentialProvider) -> None:
        self._credentials = credentials

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._credentials.bearer_token()}"
        response = yield request
        if response.status_code == 401:
            self._credentials.invalidate()
            request.headers["Authorization"] = f"Bearer {self._credentials.bearer_token()}"
            yield request


class RestManagementBackend(SearchManagementBackend):
    """ARM REST backend using ``httpx``.

    Args:
        config: Management configuration (subscription id is required).
        credentials: Token source; built from ``config`` when omitted.
        client: Optional pre-built ``httpx.Client``; the backend only
            closes clients it created itself.
    """

    name = "rest"

    def __init__(
        self,
        config: ManagementConfig,
        credentials: CredentialProvider | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config)
        self._subscription_id = config.require_subscription()
        self._credentials = credentials or CredentialProvider.from_config(config)
        self._auth = BearerTokenAuth(self._credentials)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=config.arm_endpoint,
            timeout=config.http_timeout_s,
            headers={"Accept": "application/json"},
        )

    # ------------------------------------------------------------------
    # Subscription and provider registration
    # ------------------------------------------------------------------

    def get_subscription(self) -> dict[str, Any]:
        body = self._request(
            "GET",
            self._subscription_path(),
            api_version=self._config.subscriptions_api_version,
        )
        return body or {}

    def register_provider(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        body = self._request(
            "POST",
            f"{self._subscription_path()}/providers/{namespace}/register",
            api_version=self._config.resources_api_version,
        )
        registration = ProviderRegistration.from_arm(body or {})
        logger.info(
            "Provider registration requested | namespace=%s | state=%s",
            registration.namespace,
            registration.registration_state,
        )
        return registration

    def get_provider_registration(
        self, namespace: str = SEARCH_PROVIDER_NAMESPACE
    ) -> ProviderRegistration:
        body = self._request(
            "GET",
            f"{self._subscription_path()}/providers/{namespace}",
            api_version=self._config.resources_api_version,
        )
        return ProviderRegistration.from_arm(body or {})

    # ------------------------------------------------------------------
    # Search services
    # ------------------------------------------------------------------

    def list_services(self, resource_group: str) -> list[SearchService]:
        items = self._request_paged("GET", self._services_path(resource_group))
        return [SearchService.from_arm(item) for item in items]

    def get_service(self, resource_group: str, name: str) -> SearchService:
        body = self._request("GET", self._services_path(resource_group, name))
        return SearchService.from_arm(body or {})

    def create_or_update_service(
        self, resource_group: str, name: str, spec: SearchServiceSpec
    ) -> SearchService:
        validate_service_name(name)
        body = self._request(
            "PUT",
            self._services_path(resource_group, name),
            json=spec.to_arm_body(),
        )
        service = SearchService.from_arm(body or {})
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
        body = self._request(
            "PATCH",
            self._services_path(resource_group, name),
            json={"properties": properties},
        )
        return SearchService.from_arm(body or {})

    def delete_service(self, resource_group: str, name: str) -> None:
        self._request("DELETE", self._services_path(resource_group, name))
        logger.info("Search service deleted | service=%s | rg=%s", name, resource_group)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def list_admin_keys(self, resource_group: str, name: str) -> AdminKeys:
        body = self._request("POST", f"{self._services_path(resource_group, name)}/listAdminKeys")
        return AdminKeys.from_arm(body or {})

    def regenerate_admin_key(
        self, resource_group: str, name: str, kind: AdminKeyKind
    ) -> AdminKeys:
        body = self._request(
            "POST",
            f"{self._services_path(resource_group, name)}/regenerateAdminKey/{kind.value}",
        )
        return AdminKeys.from_arm(body or {})

    def create_query_key(self, resource_group: str, name: str, key_name: str) -> QueryKey:
        body = self._request(
            "POST",
            f"{self._services_path(resource_group, name)}/createQueryKey/{quote(key_name, safe='')}",
        )
        return QueryKey.from_arm(body or {})

    def list_query_keys(self, resource_group: str, name: str) -> list[QueryKey]:
        items = self._request_paged(
            "POST", f"{self._services_path(resource_group, name)}/listQueryKeys"
        )
        return [QueryKey.from_arm(item) for item in items]

    def delete_query_key(self, resource_group: str, name: str, key: str) -> None:
        self._request(
            "DELETE",
            f"{self._services_path(resource_group, name)}/deleteQueryKey/{quote(key, safe='')}",
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _subscription_path(self) -> str:
        return f"/subscriptions/{self._subscription_id}"

    def _services_path(self, resource_group: str, name: str = "") -> str:
        path = (
            f"{self._subscription_path()}/resourceGroups/{quote(resource_group, safe='')}"
            f"/providers/{SEARCH_PROVIDER_NAMESPACE}/searchServices"
        )
        return f"{path}/{name}" if name else path

    def _request(
        self,
        method: str,
        path: str,
        *,
        api_version: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Send one ARM request and decode its JSON body.

        Args:
            method: HTTP verb.
            path: Path relative to the ARM endpoint, or an absolute URL
                (``nextLink`` values already carry their ``api-version``).
            api_version: Query ``api-version``; defaults to the search API
                version.  Ignored for absolute URLs.
            json: Optional request body.

        Returns:
            The decoded JSON object, or ``None`` for empty responses.

        Raises:
            ArmTransportError: On connection failures and timeouts.
            BackendError: On any non-success status (see ``error_for_status``).
            ContractError: If a response body is not a JSON object.
        """
        params = None
        if not path.startswith("https://"):
            params = {"api-version": api_version or self._config.search_api_version}

        try:
            response = self._client.request(method, path, params=params, json=json, auth=self._auth)
        except httpx.TransportError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise ArmTransportError(self.name, msg) from exc

        logger.debug(
            "ARM request | method=%s | path=%s | status=%d",
            method,
            path,
            response.status_code,
        )

        if response.is_error:
            raise self._error_from_response(method, path, response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            msg = f"{method} {path} returned a non-JSON body"
            raise ContractError(msg, stage="backend", code="INVALID_JSON") from exc
        if not isinstance(body, dict):
            msg = f"{method} {path} returned {type(body).__name__}, expected an object"
            raise ContractError(msg, stage="backend", code="INVALID_JSON")
        return body

    def _request_paged(self, method: str, path: str) -> list[dict[str, Any]]:
        """Collect ``value`` items across ``nextLink`` pages.

        Continuation pages are always fetched with ``GET``.
        """
        items: list[dict[str, Any]] = []
        body = self._request(method, path)
        while body:
            value = body.get("value", [])
            if not isinstance(value, list):
                msg = f"{method} {path} returned a non-list 'value'"
                raise ContractError(msg, stage="backend", code="INVALID_PAGE")
            items.extend(value)
            next_link = body.get("nextLink")
            if not next_link:
                break
            body = self._request("GET", str(next_link))
        return items

    def _error_from_response(
        self, method: str, path: str, response: httpx.Response
    ) -> BackendError:
        error_code = ""
        detail = response.reason_phrase
        try:
            error = response.json().get("error") or {}
            error_code = str(error.get("code") or "")
            detail = str(error.get("message") or detail)
        except (ValueError, AttributeError):
            pass

        msg = f"{method} {path} failed with {response.status_code}: {detail}"
        return error_for_status(
            self.name,
            response.status_code,
            msg,
            error_code=error_code,
            correlation_id=response.headers.get(_CORRELATION_HEADER, ""),
        )
