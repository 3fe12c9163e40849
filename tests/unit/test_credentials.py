"""Tests for credential construction and the token-caching provider."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

from search_mgmt.auth.credentials import (
    TOKEN_REFRESH_SKEW_SECONDS,
    CredentialError,
    CredentialProvider,
    build_credential,
)
from search_mgmt.core.config import ManagementConfig

_MODULE = "search_mgmt.auth.credentials"
_SCOPE = "https://management.azure.com/.default"


class TestBuildCredential:
    """Auth mode → azure-identity credential class."""

    def test_default_mode(self) -> None:
        with patch(f"{_MODULE}.DefaultAzureCredential") as cls:
            credential = build_credential(ManagementConfig())
        cls.assert_called_once_with()
        assert credential is cls.return_value

    def test_cli_mode_passes_tenant(self) -> None:
        config = ManagementConfig(auth_mode="cli", tenant_id="t-1")
        with patch(f"{_MODULE}.AzureCliCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with(tenant_id="t-1")

    def test_service_principal(self) -> None:
        config = ManagementConfig(
            auth_mode="service_principal", tenant_id="t", client_id="c", client_secret="s"
        )
        with patch(f"{_MODULE}.ClientSecretCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with(tenant_id="t", client_id="c", client_secret="s")

    def test_service_principal_requires_secret(self) -> None:
        config = ManagementConfig(auth_mode="service_principal", tenant_id="t", client_id="c")
        with pytest.raises(CredentialError, match="AZURE_CLIENT_SECRET"):
            build_credential(config)

    def test_managed_identity_system_assigned(self) -> None:
        config = ManagementConfig(auth_mode="managed_identity")
        with patch(f"{_MODULE}.ManagedIdentityCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with()

    def test_managed_identity_user_assigned(self) -> None:
        config = ManagementConfig(auth_mode="managed_identity", client_id="mi-1")
        with patch(f"{_MODULE}.ManagedIdentityCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with(client_id="mi-1")

    def test_interactive_without_client_id(self) -> None:
        config = ManagementConfig(auth_mode="interactive", tenant_id="t")
        with patch(f"{_MODULE}.InteractiveBrowserCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with(tenant_id="t")

    def test_device_code_with_client_id(self) -> None:
        config = ManagementConfig(auth_mode="device_code", tenant_id="t", client_id="app")
        with patch(f"{_MODULE}.DeviceCodeCredential") as cls:
            build_credential(config)
        cls.assert_called_once_with(tenant_id="t", client_id="app")

    @pytest.mark.parametrize("mode", ["interactive", "device_code"])
    def test_user_flows_require_tenant(self, mode: str) -> None:
        with pytest.raises(CredentialError, match="AZURE_TENANT_ID"):
            build_credential(ManagementConfig(auth_mode=mode))


class TestCredentialProvider:
    """Token caching, refresh and lifecycle."""

    def _provider(self, now: list[float]) -> tuple[CredentialProvider, MagicMock]:
        credential = MagicMock()
        credential.get_token.side_effect = [
            AccessToken("tok-1", 3600),
            AccessToken("tok-2", 7200),
        ]
        provider = CredentialProvider(credential, _SCOPE, time_source=lambda: now[0])
        return provider, credential

    def test_token_is_cached(self) -> None:
        now = [0.0]
        provider, credential = self._provider(now)
        assert provider.bearer_token() == "tok-1"
        now[0] = 1000.0
        assert provider.bearer_token() == "tok-1"
        credential.get_token.assert_called_once_with(_SCOPE)

    def test_token_refreshed_within_skew(self) -> None:
        now = [0.0]
        provider, credential = self._provider(now)
        provider.bearer_token()
        now[0] = 3600.0 - TOKEN_REFRESH_SKEW_SECONDS
        assert provider.bearer_token() == "tok-2"
        assert credential.get_token.call_count == 2

    def test_invalidate_forces_reacquire(self) -> None:
        now = [0.0]
        provider, _ = self._provider(now)
        provider.bearer_token()
        provider.invalidate()
        assert provider.bearer_token() == "tok-2"

    def test_authentication_failure_raises_credential_error(self) -> None:
        credential = MagicMock()
        credential.get_token.side_effect = ClientAuthenticationError("login required")
        provider = CredentialProvider(credential, _SCOPE)
        with pytest.raises(CredentialError, match="login required") as exc_info:
            provider.bearer_token()
        assert isinstance(exc_info.value.__cause__, ClientAuthenticationError)

    def test_close_closes_credential(self) -> None:
        credential = MagicMock()
        with CredentialProvider(credential, _SCOPE) as provider:
            assert provider.credential is credential
            assert provider.scope == _SCOPE
        credential.close.assert_called_once_with()

    def test_from_config_uses_arm_scope(self) -> None:
        config = ManagementConfig(arm_endpoint="https://management.usgovcloudapi.net")
        with patch(f"{_MODULE}.DefaultAzureCredential"):
            provider = CredentialProvider.from_config(config)
        assert provider.scope == "https://management.usgovcloudapi.net/.default"
