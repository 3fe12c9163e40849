"""Management configuration loaded from environment variables.

All configuration values have defaults matching the console
walkthrough (resource group ``Default-Web-WestUS``, location
``West US``, 30 s provisioning poll interval).  Environment variables
(or Azure Functions app settings) are the source of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range or an enumerated value is unknown.
    This catches bad configuration at startup rather than mid-walkthrough.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

from search_mgmt.core.constants import (
    DEFAULT_ARM_ENDPOINT,
    DEFAULT_LOCATION,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    DEFAULT_RESOURCE_GROUP,
    DEFAULT_RESOURCES_API_VERSION,
    DEFAULT_SEARCH_API_VERSION,
    DEFAULT_SUBSCRIPTIONS_API_VERSION,
    DEFAULT_TRANSPORT_RETRIES,
)
from search_mgmt.core.exceptions import ManagementError
from search_mgmt.models.provisioning import PollPolicy

#: Recognised ``AZURE_AUTH_MODE`` values (see ``search_mgmt.auth.credentials``).
AUTH_MODES = frozenset(
    {"default", "cli", "service_principal", "managed_identity", "interactive", "device_code"}
)

#: Recognised ``MANAGEMENT_BACKEND`` values (see ``search_mgmt.backends.factory``).
BACKENDS = frozenset({"rest", "sdk"})

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConfigValidationError(ManagementError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ManagementConfig:
    """Immutable management configuration.

    Loaded once at startup and passed to the credential provider,
    backend factory and activities.

    Attributes:
        subscription_id: Azure subscription to manage.
        tenant_id: Entra ID tenant (required for some auth modes).
        client_id: App registration / user-assigned identity client id.
        client_secret: Service principal secret (never shown in repr).
        auth_mode: Credential flavour (see ``AUTH_MODES``).
        arm_endpoint: Azure Resource Manager base URL.
        resource_group: Resource group holding the search services.
        location: Region for new services.
        backend: ``"rest"`` (httpx) or ``"sdk"`` (azure-mgmt-search).
        search_api_version: ``Microsoft.Search`` API version.
        resources_api_version: Provider registration API version.
        subscriptions_api_version: Subscription read API version.
        http_timeout_s: Per-request HTTP timeout in seconds.
        poll_interval_s: Base provisioning poll interval in seconds.
        poll_timeout_s: Maximum provisioning wait in seconds (0 = no time bound).
        poll_max_attempts: Maximum state observations (0 = no attempt bound).
        poll_backoff_multiplier: Interval growth factor per poll (>= 1).
        poll_max_interval_s: Cap on any single poll interval.
        poll_transport_retries: Consecutive transient errors tolerated per loop.
        log_level: Root log level for the console entry point.
    """

    subscription_id: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    auth_mode: str = "default"
    arm_endpoint: str = DEFAULT_ARM_ENDPOINT
    resource_group: str = DEFAULT_RESOURCE_GROUP
    location: str = DEFAULT_LOCATION
    backend: str = "rest"
    search_api_version: str = DEFAULT_SEARCH_API_VERSION
    resources_api_version: str = DEFAULT_RESOURCES_API_VERSION
    subscriptions_api_version: str = DEFAULT_SUBSCRIPTIONS_API_VERSION
    http_timeout_s: float = 60.0
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_timeout_s: float = DEFAULT_POLL_TIMEOUT_SECONDS
    poll_max_attempts: int = 0
    poll_backoff_multiplier: float = 1.0
    poll_max_interval_s: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS
    poll_transport_retries: int = DEFAULT_TRANSPORT_RETRIES
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ManagementConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or unknown.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``POLL_INTERVAL_SECONDS=abc``).
        """
        config = cls(
            subscription_id=os.getenv("AZURE_SUBSCRIPTION_ID", ""),
            tenant_id=os.getenv("AZURE_TENANT_ID", ""),
            client_id=os.getenv("AZURE_CLIENT_ID", ""),
            client_secret=os.getenv("AZURE_CLIENT_SECRET", ""),
            auth_mode=os.getenv("AZURE_AUTH_MODE", "default").strip().lower(),
            arm_endpoint=os.getenv("ARM_ENDPOINT", DEFAULT_ARM_ENDPOINT).rstrip("/"),
            resource_group=os.getenv("SEARCH_RESOURCE_GROUP", DEFAULT_RESOURCE_GROUP),
            location=os.getenv("SEARCH_LOCATION", DEFAULT_LOCATION),
            backend=os.getenv("MANAGEMENT_BACKEND", "rest").strip().lower(),
            search_api_version=os.getenv("SEARCH_API_VERSION", DEFAULT_SEARCH_API_VERSION),
            resources_api_version=os.getenv(
                "RESOURCES_API_VERSION", DEFAULT_RESOURCES_API_VERSION
            ),
            subscriptions_api_version=os.getenv(
                "SUBSCRIPTIONS_API_VERSION", DEFAULT_SUBSCRIPTIONS_API_VERSION
            ),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_SECONDS", "60")),
            poll_interval_s=float(os.getenv("POLL_INTERVAL_SECONDS", "30")),
            poll_timeout_s=float(os.getenv("POLL_TIMEOUT_SECONDS", "1800")),
            poll_max_attempts=int(os.getenv("POLL_MAX_ATTEMPTS", "0")),
            poll_backoff_multiplier=float(os.getenv("POLL_BACKOFF_MULTIPLIER", "1.0")),
            poll_max_interval_s=float(os.getenv("POLL_MAX_INTERVAL_SECONDS", "300")),
            poll_transport_retries=int(os.getenv("POLL_TRANSPORT_RETRIES", "3")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )
        _validate(config)
        return config

    def with_overrides(self, **changes: object) -> ManagementConfig:
        """Return a validated copy with *changes* applied.

        ``None`` values are ignored so that unset CLI flags keep the
        environment value.
        """
        applied = {key: value for key, value in changes.items() if value is not None}
        if not applied:
            return self
        config = replace(self, **applied)  # type: ignore[arg-type]
        _validate(config)
        return config

    def poll_policy(self) -> PollPolicy:
        """Build the ``PollPolicy`` described by the ``POLL_*`` settings."""
        return PollPolicy(
            interval_seconds=self.poll_interval_s,
            max_attempts=self.poll_max_attempts or None,
            max_duration_seconds=self.poll_timeout_s or None,
            backoff_multiplier=self.poll_backoff_multiplier,
            max_interval_seconds=self.poll_max_interval_s,
            max_transport_retries=self.poll_transport_retries,
        )

    def require_subscription(self) -> str:
        """Return the subscription id, failing fast when it is unset."""
        if not self.subscription_id:
            raise ConfigValidationError(
                "AZURE_SUBSCRIPTION_ID", self.subscription_id, "must be set"
            )
        return self.subscription_id

    @property
    def arm_scope(self) -> str:
        """OAuth scope for tokens accepted by ``arm_endpoint``."""
        return f"{self.arm_endpoint}/.default"


def _validate(config: ManagementConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.auth_mode not in AUTH_MODES:
        raise ConfigValidationError(
            "AZURE_AUTH_MODE",
            config.auth_mode,
            f"must be one of {', '.join(sorted(AUTH_MODES))}",
        )

    if config.backend not in BACKENDS:
        raise ConfigValidationError(
            "MANAGEMENT_BACKEND",
            config.backend,
            f"must be one of {', '.join(sorted(BACKENDS))}",
        )

    if not config.arm_endpoint.startswith("https://"):
        raise ConfigValidationError(
            "ARM_ENDPOINT",
            config.arm_endpoint,
            "must be an https:// URL",
        )

    if not config.resource_group:
        raise ConfigValidationError(
            "SEARCH_RESOURCE_GROUP",
            config.resource_group,
            "must not be empty",
        )

    if not config.location:
        raise ConfigValidationError(
            "SEARCH_LOCATION",
            config.location,
            "must not be empty",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_SECONDS",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.poll_interval_s <= 0:
        raise ConfigValidationError(
            "POLL_INTERVAL_SECONDS",
            config.poll_interval_s,
            "must be > 0 (seconds)",
        )

    if config.poll_timeout_s < 0:
        raise ConfigValidationError(
            "POLL_TIMEOUT_SECONDS",
            config.poll_timeout_s,
            "must be >= 0 (seconds, 0 disables the time bound)",
        )

    if config.poll_max_attempts < 0:
        raise ConfigValidationError(
            "POLL_MAX_ATTEMPTS",
            config.poll_max_attempts,
            "must be >= 0 (0 disables the attempt bound)",
        )

    if config.poll_timeout_s == 0 and config.poll_max_attempts == 0:
        raise ConfigValidationError(
            "POLL_TIMEOUT_SECONDS",
            config.poll_timeout_s,
            "cannot be 0 while POLL_MAX_ATTEMPTS is also 0 (polling would never end)",
        )

    if config.poll_backoff_multiplier < 1.0:
        raise ConfigValidationError(
            "POLL_BACKOFF_MULTIPLIER",
            config.poll_backoff_multiplier,
            "must be >= 1.0",
        )

    if config.poll_max_interval_s <= 0:
        raise ConfigValidationError(
            "POLL_MAX_INTERVAL_SECONDS",
            config.poll_max_interval_s,
            "must be > 0 (seconds)",
        )

    if config.poll_transport_retries < 0:
        raise ConfigValidationError(
            "POLL_TRANSPORT_RETRIES",
            config.poll_transport_retries,
            "must be >= 0",
        )

    if config.log_level not in _LOG_LEVELS:
        raise ConfigValidationError(
            "LOG_LEVEL",
            config.log_level,
            f"must be one of {', '.join(sorted(_LOG_LEVELS))}",
        )
