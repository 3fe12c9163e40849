"""Provisioning activities — start an asynchronous operation and wait for it.

Each activity issues one management call through a backend and then
hands the matching state accessor to the provisioning poller:

- ``provision_and_wait``          — create a service, wait for ``succeeded``
- ``scale_and_wait``              — change replicas/partitions, wait again
- ``register_provider_and_wait``  — register ``Microsoft.Search``, wait for ``Registered``
- ``wait_for_provisioning``       — wait on an operation started elsewhere

The poller itself never logs; the activities log the start and the
outcome of every loop.  Outcomes are returned as ``PollResult``; callers
that prefer an exception use ``ensure_completed``.

Free services typically complete immediately, so their first poll
already observes ``succeeded``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from search_mgmt.core.constants import SEARCH_PROVIDER_NAMESPACE
from search_mgmt.core.exceptions import PermanentError
from search_mgmt.polling.poller import poll

if TYPE_CHECKING:
    from search_mgmt.backends.base import SearchManagementBackend
    from search_mgmt.models.provisioning import PollPolicy, PollResult
    from search_mgmt.models.search_service import SearchServiceSpec
    from search_mgmt.polling.clock import CancellationToken, Clock

logger = logging.getLogger("search_mgmt.activities.provisioning")


class ProvisioningError(PermanentError):
    """Raised by ``ensure_completed`` when a polling loop did not complete.

    Attributes:
        result: The ``PollResult`` that was not ``COMPLETED``.
    """

    default_stage = "provisioning"
    default_code = "PROVISIONING_FAILED"

    def __init__(self, message: str, result: PollResult) -> None:
        self.result = result
        super().__init__(message)

    def error_details(self) -> dict[str, object]:
        return {"poll_result": self.result.to_dict()}


def ensure_completed(result: PollResult, *, operation: str = "operation") -> PollResult:
    """Return *result* if it completed, otherwise raise ``ProvisioningError``."""
    if result.is_completed:
        return result
    reason = f" ({result.reason.value})" if result.reason else ""
    msg = (
        f"{operation} did not complete: {result.outcome.value}{reason}, "
        f"state={result.state.value}"
    )
    if result.error:
        msg = f"{msg}: {result.error}"
    raise ProvisioningError(msg, result)


def wait_for_provisioning(
    backend: SearchManagementBackend,
    resource_group: str,
    name: str,
    policy: PollPolicy,
    *,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
) -> PollResult:
    """Poll a search service until its provisioning state is terminal.

    Args:
        backend: Management backend used to read the service.
        resource_group: Resource group of the service.
        name: Service name.
        policy: Poll interval, bounds and backoff.
        clock: Optional clock (tests pass a fake).
        cancel_token: Optional cancellation signal.

    Returns:
        The ``PollResult`` of the loop.
    """
    logger.info(
        "Waiting for provisioning | service=%s | rg=%s | interval=%.0fs",
        name,
        resource_group,
        policy.interval_seconds,
    )
    result = poll(
        backend.service_state_accessor(resource_group, name),
        policy,
        clock=clock,
        cancel_token=cancel_token,
    )
    _log_result("provisioning", name, result)
    return result


def provision_and_wait(
    backend: SearchManagementBackend,
    resource_group: str,
    name: str,
    spec: SearchServiceSpec,
    policy: PollPolicy,
    *,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
) -> PollResult:
    """Create (or reconfigure) a search service and wait until it is provisioned.

    Standard services take minutes to provision and are charged while
    they exist.

    Raises:
        BackendError: If the create request itself is rejected.
    """
    logger.info(
        "provision started | service=%s | sku=%s | replicas=%d | partitions=%d",
        name,
        spec.sku,
        spec.replica_count,
        spec.partition_count,
    )
    backend.create_or_update_service(resource_group, name, spec)
    return wait_for_provisioning(
        backend, resource_group, name, policy, clock=clock, cancel_token=cancel_token
    )


def scale_and_wait(
    backend: SearchManagementBackend,
    resource_group: str,
    name: str,
    policy: PollPolicy,
    *,
    replica_count: int | None = None,
    partition_count: int | None = None,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
) -> PollResult:
    """Change a service's replica/partition count and wait for the update.

    Raises:
        ModelValidationError: If the counts are invalid.
        BackendError: If the update request itself is rejected.
    """
    logger.info(
        "scale started | service=%s | replicas=%s | partitions=%s",
        name,
        replica_count,
        partition_count,
    )
    backend.scale_service(
        resource_group,
        name,
        replica_count=replica_count,
        partition_count=partition_count,
    )
    return wait_for_provisioning(
        backend, resource_group, name, policy, clock=clock, cancel_token=cancel_token
    )


def register_provider_and_wait(
    backend: SearchManagementBackend,
    policy: PollPolicy,
    *,
    namespace: str = SEARCH_PROVIDER_NAMESPACE,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
) -> PollResult:
    """Register a resource provider and wait until it reports ``Registered``."""
    registration = backend.register_provider(namespace)
    logger.info(
        "Waiting for provider registration | namespace=%s | state=%s",
        namespace,
        registration.registration_state,
    )
    result = poll(
        backend.registration_state_accessor(namespace),
        policy,
        clock=clock,
        cancel_token=cancel_token,
    )
    _log_result("registration", namespace, result)
    return result


def _log_result(operation: str, target: str, result: PollResult) -> None:
    if result.is_completed:
        logger.info(
            "%s completed | target=%s | polls=%d | elapsed=%.0fs",
            operation,
            target,
            result.attempts,
            result.elapsed_seconds,
        )
        return
    logger.warning(
        "%s did not complete | target=%s | outcome=%s | reason=%s | state=%s | polls=%d | "
        "elapsed=%.0fs | error=%s",
        operation,
        target,
        result.outcome.value,
        result.reason.value if result.reason else "",
        result.state.value,
        result.attempts,
        result.elapsed_seconds,
        result.error,
    )
