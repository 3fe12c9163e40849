"""Walkthrough activity — exercise every management operation in order.

Runs the full console sequence against one resource group:

 1. Get subscription data
 2. Register the ``Microsoft.Search`` provider
 3. List search services
 4. Create a ``sample<n>`` search service (optionally waiting for it)
 5. Get the new service's definition
 6. List admin keys
 7. Regenerate the secondary admin key
 8. Create the ``myQueryKey`` query key
 9. List query keys
10. Delete the first query key
11. Scale to 2 replicas (skipped for ``free`` services)
12. Delete the service (skipped when ``keep`` is set)

Every step produces a ``WalkthroughStep`` handed to a reporter callable.
A failing step is recorded and the walkthrough moves on; a failed
create skips every step that needs the service.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from search_mgmt.activities.provisioning import wait_for_provisioning
from search_mgmt.core.constants import (
    DEFAULT_QUERY_KEY_NAME,
    FREE_SKU,
    SEARCH_PROVIDER_NAMESPACE,
)
from search_mgmt.core.exceptions import ManagementError
from search_mgmt.models.search_service import AdminKeyKind, SearchServiceSpec
from search_mgmt.utils.helpers import sample_service_name, to_jsonable

if TYPE_CHECKING:
    from collections.abc import Callable

    from search_mgmt.backends.base import SearchManagementBackend
    from search_mgmt.core.config import ManagementConfig
    from search_mgmt.models.provisioning import PollPolicy
    from search_mgmt.polling.clock import CancellationToken, Clock

logger = logging.getLogger("search_mgmt.activities.walkthrough")

SCALED_REPLICA_COUNT = 2


@dataclass(frozen=True, slots=True)
class WalkthroughStep:
    """Outcome of one walkthrough step.

    Attributes:
        title: Human-readable step title.
        request: ``VERB path`` style description of the call.
        payload: JSON-friendly result (``None`` for empty responses).
        error: Error message when the step failed.
        skipped: ``True`` when the step was not attempted.
        note: Why the step was skipped.
    """

    title: str
    request: str = ""
    payload: Any = None
    error: str = ""
    skipped: bool = False
    note: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True, slots=True)
class WalkthroughResult:
    """All steps of a walkthrough run plus the service it created."""

    service_name: str
    steps: tuple[WalkthroughStep, ...]

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def failed_steps(self) -> list[WalkthroughStep]:
        return [step for step in self.steps if not step.ok]


class _Runner:
    """Collects steps and forwards each one to the reporter."""

    def __init__(self, reporter: Callable[[WalkthroughStep], None]) -> None:
        self._reporter = reporter
        self.steps: list[WalkthroughStep] = []

    def run(self, title: str, request: str, call: Callable[[], Any]) -> WalkthroughStep:
        try:
            payload = call()
        except ManagementError as exc:
            logger.warning("Walkthrough step failed | step=%s | error=%s", title, exc)
            step = WalkthroughStep(title=title, request=request, error=str(exc))
        else:
            step = WalkthroughStep(title=title, request=request, payload=to_jsonable(payload))
        self.record(step)
        return step

    def skip(self, title: str, request: str, note: str) -> WalkthroughStep:
        logger.warning("Walkthrough step skipped | step=%s | reason=%s", title, note)
        step = WalkthroughStep(title=title, request=request, skipped=True, note=note)
        self.record(step)
        return step

    def record(self, step: WalkthroughStep) -> None:
        self.steps.append(step)
        self._reporter(step)


def run_walkthrough(
    backend: SearchManagementBackend,
    config: ManagementConfig,
    reporter: Callable[[WalkthroughStep], None],
    *,
    sku: str = FREE_SKU,
    service_name: str = "",
    wait: bool = False,
    keep: bool = False,
    policy: PollPolicy | None = None,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
    rng: random.Random | None = None,
) -> WalkthroughResult:
    """Run the management walkthrough and return every recorded step.

    Args:
        backend: Management backend to drive.
        config: Supplies the resource group, location and poll policy.
        reporter: Called once per step, in order.
        sku: SKU of the service to create.
        service_name: Service name; a random ``sample<n>`` when empty.
        wait: Poll the new service until it is provisioned.
        keep: Leave the service in place instead of deleting it.
        policy: Poll policy for ``wait`` (defaults to ``config.poll_policy()``).
        clock: Optional clock for the poll loop.
        cancel_token: Optional cancellation signal for the poll loop.
        rng: Random source for the generated service name.

    Returns:
        A ``WalkthroughResult``.
    """
    rg = config.resource_group
    name = service_name or sample_service_name(rng)
    service_path = f"resourceGroups/{rg}/providers/Microsoft.Search/searchServices/{name}"
    runner = _Runner(reporter)

    logger.info("Walkthrough started | service=%s | rg=%s | sku=%s", name, rg, sku)

    runner.run("Subscription data", "GET subscriptions/{id}", backend.get_subscription)
    runner.run(
        "Register search resource provider",
        f"POST providers/{SEARCH_PROVIDER_NAMESPACE}/register",
        backend.register_provider,
    )
    runner.run(
        "List search services",
        f"GET resourceGroups/{rg}/providers/Microsoft.Search/searchServices",
        lambda: backend.list_services(rg),
    )

    spec = SearchServiceSpec(location=config.location, sku=sku)
    created = runner.run(
        "Create search service",
        f"PUT {service_path}",
        lambda: backend.create_or_update_service(rg, name, spec),
    )

    if created.ok and wait:
        result = wait_for_provisioning(
            backend,
            rg,
            name,
            policy or config.poll_policy(),
            clock=clock,
            cancel_token=cancel_token,
        )
        title = "Wait for provisioning"
        if result.is_completed:
            runner.run(title, f"GET {service_path}", result.to_dict)
        else:
            step = WalkthroughStep(
                title=title,
                request=f"GET {service_path}",
                payload=result.to_dict(),
                error=f"provisioning {result.outcome.value}: {result.error or result.state.value}",
            )
            runner.record(step)

    dependent = _dependent_steps(backend, rg, name, sku, keep, service_path)
    for title, request, call in dependent:
        if not created.ok:
            runner.skip(title, request, "search service was not created")
        elif call is None:
            runner.skip(title, request, _skip_note(title, sku))
        else:
            runner.run(title, request, call)

    walkthrough = WalkthroughResult(service_name=name, steps=tuple(runner.steps))
    logger.info(
        "Walkthrough finished | service=%s | steps=%d | failed=%d",
        name,
        len(walkthrough.steps),
        len(walkthrough.failed_steps),
    )
    return walkthrough


def _dependent_steps(
    backend: SearchManagementBackend,
    rg: str,
    name: str,
    sku: str,
    keep: bool,
    service_path: str,
) -> list[tuple[str, str, Callable[[], Any] | None]]:
    """Steps that need the created service; ``None`` marks a skipped step."""

    def delete_first_query_key() -> Any:
        keys = backend.list_query_keys(rg, name)
        if not keys:
            return {"deleted": None}
        backend.delete_query_key(rg, name, keys[0].key)
        return {"deleted": keys[0].name}

    scale: Callable[[], Any] | None = None
    if sku != FREE_SKU:
        scale = lambda: backend.scale_service(  # noqa: E731
            rg, name, replica_count=SCALED_REPLICA_COUNT
        )

    delete: Callable[[], Any] | None = None
    if not keep:
        delete = lambda: backend.delete_service(rg, name)  # noqa: E731

    return [
        ("Get search service", f"GET {service_path}", lambda: backend.get_service(rg, name)),
        (
            "List admin keys",
            f"POST {service_path}/listAdminKeys",
            lambda: backend.list_admin_keys(rg, name),
        ),
        (
            "Regenerate secondary admin key",
            f"POST {service_path}/regenerateAdminKey/secondary",
            lambda: backend.regenerate_admin_key(rg, name, AdminKeyKind.SECONDARY),
        ),
        (
            "Create query key",
            f"POST {service_path}/createQueryKey/{DEFAULT_QUERY_KEY_NAME}",
            lambda: backend.create_query_key(rg, name, DEFAULT_QUERY_KEY_NAME),
        ),
        (
            "List query keys",
            f"POST {service_path}/listQueryKeys",
            lambda: backend.list_query_keys(rg, name),
        ),
        (
            "Delete query key",
            f"DELETE {service_path}/deleteQueryKey/{{key}}",
            delete_first_query_key,
        ),
        ("Scale search service", f"PATCH {service_path}", scale),
        ("Delete search service", f"DELETE {service_path}", delete),
    ]


def _skip_note(title: str, sku: str) -> str:
    if title == "Scale search service":
        return f"'{sku}' services cannot be scaled"
    return "service kept"
