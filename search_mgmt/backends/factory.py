"""Backend factory — selects the active management backend by name.

The factory maintains a registry of known backends. New backends are
registered through ``register_backend``.

Usage::

    from search_mgmt.backends.factory import get_backend

    backend = get_backend("rest", config, credentials)
    services = backend.list_services(config.resource_group)

The backend name is read from the ``MANAGEMENT_BACKEND`` environment
variable via ``ManagementConfig.backend``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from search_mgmt.backends.base import BackendError, SearchManagementBackend

if TYPE_CHECKING:
    from collections.abc import Callable

    from search_mgmt.auth.credentials import CredentialProvider
    from search_mgmt.core.config import ManagementConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Backend name constants
# ---------------------------------------------------------------------------

REST = "rest"
SDK = "sdk"

# ---------------------------------------------------------------------------
# Lazy-import backend registry
# ---------------------------------------------------------------------------

# Each entry maps a backend name to a callable that returns the backend
# *class*. Imports are lazy so that the management SDK packages are only
# loaded when the SDK backend is selected.

_BACKEND_REGISTRY: dict[str, Callable[[], type[SearchManagementBackend]]] = {}


def _register_builtin_backends() -> None:
    """Register the built-in backends (lazy import thunks)."""

    def _rest() -> type[SearchManagementBackend]:
        from search_mgmt.backends.rest import RestManagementBackend

        return RestManagementBackend

    def _sdk() -> type[SearchManagementBackend]:
        from search_mgmt.backends.sdk import SdkManagementBackend

        return SdkManagementBackend

    _BACKEND_REGISTRY[REST] = _rest
    _BACKEND_REGISTRY[SDK] = _sdk


def _ensure_registry() -> None:
    """Initialise the backend registry once (idempotent)."""
    if not _BACKEND_REGISTRY:
        _register_builtin_backends()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_backend(
    name: str,
    loader: Callable[[], type[SearchManagementBackend]],
) -> None:
    """Register a custom backend.

    Args:
        name: Backend name (e.g. ``"recording"``).
        loader: A zero-argument callable that returns the backend class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Backend name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _BACKEND_REGISTRY[name] = loader
    logger.debug("Registered management backend: %s", name)


def get_backend(
    name: str,
    config: ManagementConfig,
    credentials: CredentialProvider | None = None,
) -> SearchManagementBackend:
    """Create and return a management backend instance.

    Args:
        name: Backend identifier (``"rest"`` or ``"sdk"``).
        config: Management configuration.
        credentials: Optional shared ``CredentialProvider``; each backend
            builds its own from ``config`` when omitted.

    Returns:
        A configured ``SearchManagementBackend``.

    Raises:
        BackendError: If the named backend is not registered.
    """
    _ensure_registry()

    loader = _BACKEND_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_BACKEND_REGISTRY))
        msg = f"Unknown management backend: {name!r}. Available: {available}"
        raise BackendError(name, msg)

    backend_cls = loader()
    logger.info("Creating management backend: %s", name)
    return backend_cls(config, credentials)  # type: ignore[call-arg]


def list_backends() -> list[str]:
    """Return the names of all registered backends."""
    _ensure_registry()
    return sorted(_BACKEND_REGISTRY)
