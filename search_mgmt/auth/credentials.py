"""Credential provider for Azure Resource Manager calls.

Wraps an ``azure-identity`` credential in an explicit object with its own
lifecycle instead of a process-wide cached token.  The provider is
created once, injected into the REST backend (bearer tokens) or the SDK
backend (``TokenCredential``), and closed when the caller is done.

Auth modes (``AZURE_AUTH_MODE``):
    - ``default``           — ``DefaultAzureCredential`` (env, managed identity, CLI, ...)
    - ``cli``               — ``AzureCliCredential`` (current ``az login`` context)
    - ``service_principal`` — ``ClientSecretCredential``
    - ``managed_identity``  — ``ManagedIdentityCredential`` (user-assigned when client id set)
    - ``interactive``       — ``InteractiveBrowserCredential``
    - ``device_code``       — ``DeviceCodeCredential``

References:
    https://learn.microsoft.com/python/api/overview/azure/identity-readme
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import (
    AzureCliCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
    DeviceCodeCredential,
    InteractiveBrowserCredential,
    ManagedIdentityCredential,
)

from search_mgmt.core.exceptions import PermanentError

if TYPE_CHECKING:
    from collections.abc import Callable

    from azure.core.credentials import AccessToken, TokenCredential

    from search_mgmt.core.config import ManagementConfig

logger = logging.getLogger(__name__)

#: Refresh a cached token this many seconds before it expires.
TOKEN_REFRESH_SKEW_SECONDS = 300


class CredentialError(PermanentError):
    """Raised when a credential cannot be built or a token cannot be acquired."""

    default_stage = "auth"
    default_code = "CREDENTIAL_FAILED"


def build_credential(config: ManagementConfig) -> TokenCredential:
    """Construct the ``azure-identity`` credential matching ``config.auth_mode``.

    Raises:
        CredentialError: If the mode needs settings that are missing.
    """
    mode = config.auth_mode

    if mode == "default":
        return DefaultAzureCredential()

    if mode == "cli":
        return AzureCliCredential(tenant_id=config.tenant_id)

    if mode == "service_principal":
        if not (config.tenant_id and config.client_id and config.client_secret):
            msg = (
                "service_principal mode requires AZURE_TENANT_ID, AZURE_CLIENT_ID "
                "and AZURE_CLIENT_SECRET"
            )
            raise CredentialError(msg)
        return ClientSecretCredential(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            client_secret=config.client_secret,
        )

    if mode == "managed_identity":
        if config.client_id:
            return ManagedIdentityCredential(client_id=config.client_id)
        return ManagedIdentityCredential()

    if mode in ("interactive", "device_code"):
        if not config.tenant_id:
            msg = f"{mode} mode requires AZURE_TENANT_ID"
            raise CredentialError(msg)
        # Without a client id the credentials fall back to the developer sign-on app.
        kwargs = {"client_id": config.client_id} if config.client_id else {}
        if mode == "interactive":
            return InteractiveBrowserCredential(tenant_id=config.tenant_id, **kwargs)
        return DeviceCodeCredential(tenant_id=config.tenant_id, **kwargs)

    msg = f"Unsupported auth mode: {mode!r}"
    raise CredentialError(msg)


class CredentialProvider:
    """Owns one ``TokenCredential`` and caches its ARM bearer token.

    Args:
        credential: The underlying credential.
        scope: OAuth scope to request (e.g. ``https://management.azure.com/.default``).
        time_source: Wall-clock seconds since the epoch (injectable for tests).

    Example usage::

        with CredentialProvider.from_config(config) as credentials:
            backend = get_backend("rest", config, credentials)
            ...
    """

    def __init__(
        self,
        credential: TokenCredential,
        scope: str,
        *,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self._credential = credential
        self._scope = scope
        self._time_source = time_source
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ManagementConfig) -> CredentialProvider:
        return cls(build_credential(config), config.arm_scope)

    @property
    def credential(self) -> TokenCredential:
        """The wrapped credential (for SDK clients)."""
        return self._credential

    @property
    def scope(self) -> str:
        return self._scope

    def bearer_token(self) -> str:
        """Return a valid access token, acquiring or refreshing as needed.

        Raises:
            CredentialError: If the credential cannot issue a token.
        """
        with self._lock:
            now = self._time_source()
            if self._token is None or self._token.expires_on - TOKEN_REFRESH_SKEW_SECONDS <= now:
                self._token = self._acquire()
            return self._token.token

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-acquires it."""
        with self._lock:
            self._token = None

    def close(self) -> None:
        """Release the credential's resources and forget the cached token."""
        self.invalidate()
        close = getattr(self._credential, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> CredentialProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _acquire(self) -> AccessToken:
        try:
            token = self._credential.get_token(self._scope)
        except ClientAuthenticationError as exc:
            msg = f"Failed to obtain a token for {self._scope}: {exc.message}"
            raise CredentialError(msg) from exc
        logger.debug("Acquired ARM token | scope=%s | expires_on=%d", self._scope, token.expires_on)
        return token
