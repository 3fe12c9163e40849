"""Shared management constants — single source of truth.

Centralises endpoints, API versions, provider namespaces and the
defaults used by the console walkthrough.

References:
    Azure Resource Manager REST:
        https://learn.microsoft.com/rest/api/resources/
    Azure Search management REST:
        https://learn.microsoft.com/rest/api/searchmanagement/
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoints and API versions
# ---------------------------------------------------------------------------

DEFAULT_ARM_ENDPOINT: str = "https://management.azure.com"
"""Public-cloud Azure Resource Manager endpoint."""

DEFAULT_SEARCH_API_VERSION: str = "2023-11-01"
"""``Microsoft.Search`` management API version."""

DEFAULT_RESOURCES_API_VERSION: str = "2021-04-01"
"""Resource provider registration API version."""

DEFAULT_SUBSCRIPTIONS_API_VERSION: str = "2022-12-01"
"""Subscription read API version."""

SEARCH_PROVIDER_NAMESPACE: str = "Microsoft.Search"
SEARCH_SERVICE_TYPE: str = "Microsoft.Search/searchServices"

# ---------------------------------------------------------------------------
# Walkthrough defaults
# ---------------------------------------------------------------------------

DEFAULT_RESOURCE_GROUP: str = "Default-Web-WestUS"
DEFAULT_LOCATION: str = "West US"
DEFAULT_QUERY_KEY_NAME: str = "myQueryKey"
SAMPLE_SERVICE_PREFIX: str = "sample"

# ---------------------------------------------------------------------------
# Search service limits
# ---------------------------------------------------------------------------

SKU_NAMES: frozenset[str] = frozenset(
    {
        "free",
        "basic",
        "standard",
        "standard2",
        "standard3",
        "storage_optimized_l1",
        "storage_optimized_l2",
    }
)
"""SKU names accepted by the ``Microsoft.Search`` provider."""

FREE_SKU: str = "free"

HOSTING_MODES: frozenset[str] = frozenset({"default", "highDensity"})

MIN_REPLICA_COUNT: int = 1
MAX_REPLICA_COUNT: int = 12
PARTITION_COUNTS: tuple[int, ...] = (1, 2, 3, 4, 6, 12)

SERVICE_NAME_MIN_LENGTH: int = 2
SERVICE_NAME_MAX_LENGTH: int = 60

# ---------------------------------------------------------------------------
# Polling defaults
# ---------------------------------------------------------------------------

DEFAULT_POLL_INTERVAL_SECONDS: float = 30.0
DEFAULT_POLL_TIMEOUT_SECONDS: float = 1800.0
DEFAULT_POLL_MAX_INTERVAL_SECONDS: float = 300.0
DEFAULT_TRANSPORT_RETRIES: int = 3
