"""Data models and schemas.

Defines the data structures used throughout the package:
- ProvisioningState / PollPolicy / PollResult: Provisioning poll contract
- SearchServiceSpec / SearchService: Search service configuration and state
- AdminKeys / QueryKey: API key material
- ProviderRegistration: Resource provider registration status
"""

from search_mgmt.models._validation import ModelValidationError
from search_mgmt.models.provisioning import (
    FailureReason,
    PollOutcome,
    PollPolicy,
    PollResult,
    ProvisioningState,
)
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

__all__ = [
    "ProvisioningState",
    "PollPolicy",
    "PollOutcome",
    "FailureReason",
    "PollResult",
    "SearchServiceSpec",
    "SearchService",
    "AdminKeyKind",
    "AdminKeys",
    "QueryKey",
    "ProviderRegistration",
    "ModelValidationError",
    "scale_properties",
    "validate_service_name",
]
