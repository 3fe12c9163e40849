"""Console entry point: ``python -m search_mgmt <command>``.

Every sub-command maps onto one backend operation or activity.  Results
are printed as indented JSON on stdout; logs go to stderr.

Exit codes:
    0  success
    1  management error, or a poll loop that did not complete
    2  usage error (bad arguments, invalid configuration or values)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING, Any

from search_mgmt import __version__
from search_mgmt.activities.provisioning import (
    provision_and_wait,
    register_provider_and_wait,
    scale_and_wait,
)
from search_mgmt.activities.walkthrough import run_walkthrough
from search_mgmt.backends.factory import get_backend
from search_mgmt.core.config import BACKENDS, ConfigValidationError, ManagementConfig
from search_mgmt.core.constants import (
    FREE_SKU,
    HOSTING_MODES,
    PARTITION_COUNTS,
    SEARCH_PROVIDER_NAMESPACE,
    SKU_NAMES,
)
from search_mgmt.core.exceptions import ManagementError
from search_mgmt.models._validation import ModelValidationError
from search_mgmt.models.search_service import AdminKeyKind, SearchServiceSpec
from search_mgmt.utils.helpers import ConsoleReporter, format_json

if TYPE_CHECKING:
    from collections.abc import Callable

    from search_mgmt.backends.base import SearchManagementBackend
    from search_mgmt.models.provisioning import PollResult

logger = logging.getLogger("search_mgmt.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _print(payload: Any) -> None:
    print(format_json(payload))


def _poll_exit(result: PollResult) -> int:
    _print(result.to_dict())
    return EXIT_OK if result.is_completed else EXIT_FAILURE


def _cmd_walkthrough(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    result = run_walkthrough(
        backend,
        config,
        ConsoleReporter(),
        sku=args.sku,
        service_name=args.name or "",
        wait=args.wait,
        keep=args.keep,
    )
    return EXIT_OK if result.ok else EXIT_FAILURE


def _cmd_list(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    _print(backend.list_services(config.resource_group))
    return EXIT_OK


def _cmd_show(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    _print(backend.get_service(config.resource_group, args.name))
    return EXIT_OK


def _cmd_provision(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    spec = SearchServiceSpec(
        location=args.location or config.location,
        sku=args.sku,
        replica_count=args.replicas,
        partition_count=args.partitions,
        hosting_mode=args.hosting_mode,
    )
    if args.no_wait:
        _print(backend.create_or_update_service(config.resource_group, args.name, spec))
        return EXIT_OK
    return _poll_exit(
        provision_and_wait(backend, config.resource_group, args.name, spec, config.poll_policy())
    )


def _cmd_scale(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    if args.no_wait:
        service = backend.scale_service(
            config.resource_group,
            args.name,
            replica_count=args.replicas,
            partition_count=args.partitions,
        )
        _print(service)
        return EXIT_OK
    return _poll_exit(
        scale_and_wait(
            backend,
            config.resource_group,
            args.name,
            config.poll_policy(),
            replica_count=args.replicas,
            partition_count=args.partitions,
        )
    )


def _cmd_delete(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    backend.delete_service(config.resource_group, args.name)
    _print({"deleted": args.name})
    return EXIT_OK


def _cmd_register(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    if args.no_wait:
        _print(backend.register_provider(args.namespace))
        return EXIT_OK
    return _poll_exit(
        register_provider_and_wait(backend, config.poll_policy(), namespace=args.namespace)
    )


def _cmd_admin_keys(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    _print(backend.list_admin_keys(config.resource_group, args.name))
    return EXIT_OK


def _cmd_regenerate_admin_key(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    kind = AdminKeyKind.parse(args.kind)
    _print(backend.regenerate_admin_key(config.resource_group, args.name, kind))
    return EXIT_OK


def _cmd_query_keys(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    _print(backend.list_query_keys(config.resource_group, args.name))
    return EXIT_OK


def _cmd_create_query_key(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    _print(backend.create_query_key(config.resource_group, args.name, args.key_name))
    return EXIT_OK


def _cmd_delete_query_key(
    args: argparse.Namespace, backend: SearchManagementBackend, config: ManagementConfig
) -> int:
    backend.delete_query_key(config.resource_group, args.name, args.key)
    _print({"deleted": True})
    return EXIT_OK


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="search_mgmt",
        description="Manage Azure AI Search services through Azure Resource Manager.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--backend",
        choices=sorted(BACKENDS),
        default=None,
        help="Management backend (default: env MANAGEMENT_BACKEND or 'rest')",
    )
    parser.add_argument(
        "--subscription-id",
        default=None,
        help="Subscription to manage (default: env AZURE_SUBSCRIPTION_ID)",
    )
    parser.add_argument(
        "--resource-group",
        default=None,
        help="Resource group (default: env SEARCH_RESOURCE_GROUP)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Provisioning poll interval in seconds (default: env POLL_INTERVAL_SECONDS)",
    )
    parser.add_argument(
        "--poll-timeout",
        type=float,
        default=None,
        help="Maximum provisioning wait in seconds (default: env POLL_TIMEOUT_SECONDS)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: env LOG_LEVEL)",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    walkthrough = sub.add_parser("walkthrough", help="Run every management operation in order")
    walkthrough.add_argument("--sku", choices=sorted(SKU_NAMES), default=FREE_SKU)
    walkthrough.add_argument("--name", default="", help="Service name (default: sample<n>)")
    walkthrough.add_argument(
        "--wait", action="store_true", help="Wait for the new service to finish provisioning"
    )
    walkthrough.add_argument(
        "--keep", action="store_true", help="Do not delete the service at the end"
    )
    walkthrough.set_defaults(handler=_cmd_walkthrough)

    list_cmd = sub.add_parser("list", help="List search services in the resource group")
    list_cmd.set_defaults(handler=_cmd_list)

    show = sub.add_parser("show", help="Show a search service definition")
    show.add_argument("name")
    show.set_defaults(handler=_cmd_show)

    provision = sub.add_parser("provision", help="Create a search service and wait for it")
    provision.add_argument("name")
    provision.add_argument("--sku", choices=sorted(SKU_NAMES), default=FREE_SKU)
    provision.add_argument("--replicas", type=int, default=1)
    provision.add_argument("--partitions", type=int, choices=PARTITION_COUNTS, default=1)
    provision.add_argument("--hosting-mode", choices=sorted(HOSTING_MODES), default="default")
    provision.add_argument("--location", default="", help="Region (default: env SEARCH_LOCATION)")
    provision.add_argument("--no-wait", action="store_true", help="Return once accepted")
    provision.set_defaults(handler=_cmd_provision)

    scale = sub.add_parser("scale", help="Change replica/partition counts and wait")
    scale.add_argument("name")
    scale.add_argument("--replicas", type=int, default=None)
    scale.add_argument("--partitions", type=int, choices=PARTITION_COUNTS, default=None)
    scale.add_argument("--no-wait", action="store_true", help="Return once accepted")
    scale.set_defaults(handler=_cmd_scale)

    delete = sub.add_parser("delete", help="Delete a search service")
    delete.add_argument("name")
    delete.set_defaults(handler=_cmd_delete)

    register = sub.add_parser("register", help="Register a resource provider and wait")
    register.add_argument("--namespace", default=SEARCH_PROVIDER_NAMESPACE)
    register.add_argument("--no-wait", action="store_true", help="Return once requested")
    register.set_defaults(handler=_cmd_register)

    admin_keys = sub.add_parser("admin-keys", help="List admin API keys")
    admin_keys.add_argument("name")
    admin_keys.set_defaults(handler=_cmd_admin_keys)

    regenerate = sub.add_parser("regenerate-admin-key", help="Regenerate an admin API key")
    regenerate.add_argument("name")
    regenerate.add_argument("kind", choices=[kind.value for kind in AdminKeyKind])
    regenerate.set_defaults(handler=_cmd_regenerate_admin_key)

    query_keys = sub.add_parser("query-keys", help="List query API keys")
    query_keys.add_argument("name")
    query_keys.set_defaults(handler=_cmd_query_keys)

    create_query_key = sub.add_parser("create-query-key", help="Create a query API key")
    create_query_key.add_argument("name")
    create_query_key.add_argument("key_name")
    create_query_key.set_defaults(handler=_cmd_create_query_key)

    delete_query_key = sub.add_parser("delete-query-key", help="Delete a query API key")
    delete_query_key.add_argument("name")
    delete_query_key.add_argument("key", help="The key value (not its name)")
    delete_query_key.set_defaults(handler=_cmd_delete_query_key)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(
    argv: list[str] | None = None,
    *,
    config: ManagementConfig | None = None,
    backend_factory: Callable[[ManagementConfig], SearchManagementBackend] | None = None,
) -> int:
    """Parse *argv*, run the command and return the process exit code.

    Args:
        argv: Arguments (defaults to ``sys.argv[1:]``).
        config: Base configuration (defaults to ``ManagementConfig.from_env()``).
        backend_factory: Builds the backend from the final configuration
            (defaults to ``get_backend(config.backend, config)``).
    """
    args = build_parser().parse_args(argv)

    try:
        base = config or ManagementConfig.from_env()
        config = base.with_overrides(
            backend=args.backend,
            subscription_id=args.subscription_id,
            resource_group=args.resource_group,
            poll_interval_s=args.poll_interval,
            poll_timeout_s=args.poll_timeout,
            log_level=args.log_level,
        )
    except (ConfigValidationError, ValueError) as exc:
        print(f"search_mgmt: configuration error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT, stream=sys.stderr)

    handler: Callable[..., int] = args.handler
    try:
        if backend_factory is None:
            backend = get_backend(config.backend, config)
        else:
            backend = backend_factory(config)
        with backend:
            return handler(args, backend, config)
    except (ConfigValidationError, ModelValidationError) as exc:
        logger.error("Invalid request | command=%s | error=%s", args.cmd, exc)
        print(f"search_mgmt: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except ManagementError as exc:
        logger.error(
            "Command failed | command=%s | category=%s | code=%s | error=%s",
            args.cmd,
            exc.category,
            exc.code,
            exc.message,
        )
        print(format_json({"error": exc.to_error_dict()}), file=sys.stderr)
        return EXIT_FAILURE
