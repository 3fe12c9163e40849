"""Unified management exception taxonomy.

Provides a shared base exception hierarchy for every backend, activity
and surface in the package. Every domain exception inherits from
``ManagementError`` and carries structured context fields that enable
consistent retry decisions and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — input/contract violations, never retryable.
- ``TransientError``    — temporary failures (network, throttle), retryable.
- ``PermanentError``    — unrecoverable failures (not found, denied), not retryable.
- ``ContractError``     — response/request body drift, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and HTTP error bodies. Subclasses
extend it through ``error_details()``; backend errors add the ARM
HTTP status and error code.

The ``retryable`` flag is what the provisioning poller's default
transient-error classifier looks at.
"""

from __future__ import annotations


class ManagementError(Exception):
    """Base exception for all search-management errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"config"``, ``"backend"``, ``"auth"``).
        code: Machine-readable error code (e.g. ``"ARM_REQUEST_FAILED"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: ARM request/correlation identifier, when known.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys.

        The six base keys are always present; ``error_details()`` may add
        more (HTTP status for backend errors, the poll result for
        provisioning errors).
        """
        payload: dict[str, object] = {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }
        payload.update(self.error_details())
        return payload

    def error_details(self) -> dict[str, object]:
        """Extra payload fields for ``to_error_dict``; none by default."""
        return {}


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(ManagementError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(ManagementError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(ManagementError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(ManagementError):
    """Request or response body does not match the expected shape. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
