"""Search management backends.

Implements the transport-agnostic adapter pattern:
- SearchManagementBackend: Abstract base class defining the interface
- RestManagementBackend: Hand-rolled ARM REST calls over httpx
- SdkManagementBackend: azure-mgmt-search / azure-mgmt-resource SDK clients

The active backend is selected via configuration (``MANAGEMENT_BACKEND``).
Concrete backends are imported lazily by the factory.
"""

from search_mgmt.backends.base import (
    ArmAuthError,
    ArmRequestError,
    ArmTransportError,
    BackendError,
    ResourceNotFoundError,
    SearchManagementBackend,
)
from search_mgmt.backends.factory import (
    REST,
    SDK,
    get_backend,
    list_backends,
    register_backend,
)

__all__ = [
    "REST",
    "SDK",
    "ArmAuthError",
    "ArmRequestError",
    "ArmTransportError",
    "BackendError",
    "ResourceNotFoundError",
    "SearchManagementBackend",
    "get_backend",
    "list_backends",
    "register_backend",
]
