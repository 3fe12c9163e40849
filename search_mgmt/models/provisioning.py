"""Typed models for long-running provisioning operations.

Defines the data exchanged between a state accessor, the provisioning
poller, and its callers:

- ``ProvisioningState``: Decoded provider status string
- ``PollPolicy``: Interval, bounds and backoff for one polling loop
- ``PollOutcome`` / ``FailureReason``: Tags of a ``PollResult``
- ``PollResult``: Terminal result of a polling loop

Design notes:
- All models are frozen dataclasses.
- Unrecognised provider status strings decode to ``UNKNOWN``; they never
  raise.  The poller treats ``UNKNOWN`` as a failure.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any

from search_mgmt.core.constants import (
    DEFAULT_POLL_MAX_INTERVAL_SECONDS,
    DEFAULT_TRANSPORT_RETRIES,
)
from search_mgmt.models._validation import (
    ModelValidationError,
    check_min,
    check_positive,
)

# ---------------------------------------------------------------------------
# Provisioning state
# ---------------------------------------------------------------------------


class ProvisioningState(enum.Enum):
    """Server-reported status of an asynchronous resource operation.

    Values:
        PENDING:     Accepted but not started (or provider not yet registered).
        IN_PROGRESS: Provisioning, updating, deleting, or registering.
        SUCCEEDED:   Operation finished successfully.
        FAILED:      Operation finished unsuccessfully.
        CANCELED:    Operation was cancelled (or provider unregistered).
        UNKNOWN:     Status string was missing or not recognised.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> ProvisioningState:
        """Decode a provider status string (case-insensitive).

        Both ``properties.provisioningState`` of a search service and
        ``registrationState`` of a resource provider are understood.
        Anything unrecognised, including ``None``, maps to ``UNKNOWN``.
        """
        if isinstance(value, ProvisioningState):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().replace(" ", "").replace("_", "").lower()
        return _STATE_ALIASES.get(key, cls.UNKNOWN)

    @property
    def is_pending(self) -> bool:
        """Whether polling should continue after observing this state."""
        return self in (ProvisioningState.PENDING, ProvisioningState.IN_PROGRESS)

    @property
    def is_terminal(self) -> bool:
        """Whether this state ends a polling loop."""
        return not self.is_pending


_STATE_ALIASES: dict[str, ProvisioningState] = {
    "pending": ProvisioningState.PENDING,
    "accepted": ProvisioningState.PENDING,
    "notregistered": ProvisioningState.PENDING,
    "notspecified": ProvisioningState.PENDING,
    "inprogress": ProvisioningState.IN_PROGRESS,
    "provisioning": ProvisioningState.IN_PROGRESS,
    "creating": ProvisioningState.IN_PROGRESS,
    "updating": ProvisioningState.IN_PROGRESS,
    "deleting": ProvisioningState.IN_PROGRESS,
    "running": ProvisioningState.IN_PROGRESS,
    "registering": ProvisioningState.IN_PROGRESS,
    "unregistering": ProvisioningState.IN_PROGRESS,
    "succeeded": ProvisioningState.SUCCEEDED,
    "registered": ProvisioningState.SUCCEEDED,
    "ready": ProvisioningState.SUCCEEDED,
    "failed": ProvisioningState.FAILED,
    "error": ProvisioningState.FAILED,
    "canceled": ProvisioningState.CANCELED,
    "cancelled": ProvisioningState.CANCELED,
    "unregistered": ProvisioningState.CANCELED,
}


# ---------------------------------------------------------------------------
# Poll policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Interval, bounds and backoff for a single polling loop.

    At least one bound (``max_attempts`` or ``max_duration_seconds``)
    is required so that a loop can never block forever.

    Attributes:
        interval_seconds: Base suspension between polls (> 0).
        max_attempts: Maximum number of state observations, or ``None``.
        max_duration_seconds: Maximum elapsed wall time, or ``None``.
        backoff_multiplier: Growth factor per attempt (>= 1, 1 = fixed interval).
        max_interval_seconds: Cap applied to every computed suspension.
        max_transport_retries: Consecutive transient fetch errors tolerated.
        retry_delay_seconds: Base delay after a transient error
            (defaults to ``interval_seconds``); doubles per consecutive error.
    """

    interval_seconds: float
    max_attempts: int | None = None
    max_duration_seconds: float | None = None
    backoff_multiplier: float = 1.0
    max_interval_seconds: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS
    max_transport_retries: int = DEFAULT_TRANSPORT_RETRIES
    retry_delay_seconds: float | None = None

    def __post_init__(self) -> None:
        check_positive("PollPolicy", "interval_seconds", self.interval_seconds)
        if self.max_attempts is None and self.max_duration_seconds is None:
            raise ModelValidationError(
                "PollPolicy",
                "max_attempts",
                None,
                "at least one of max_attempts or max_duration_seconds is required",
            )
        if self.max_attempts is not None:
            check_min("PollPolicy", "max_attempts", self.max_attempts, 1)
        if self.max_duration_seconds is not None:
            check_positive("PollPolicy", "max_duration_seconds", self.max_duration_seconds)
        check_min("PollPolicy", "backoff_multiplier", self.backoff_multiplier, 1.0)
        check_positive("PollPolicy", "max_interval_seconds", self.max_interval_seconds)
        check_min("PollPolicy", "max_transport_retries", self.max_transport_retries, 0)
        if self.retry_delay_seconds is not None:
            check_positive("PollPolicy", "retry_delay_seconds", self.retry_delay_seconds)

    def delay_for_attempt(self, attempt: int) -> float:
        """Suspension after the *attempt*-th observation (1-based), capped."""
        return _capped_growth(
            self.interval_seconds,
            self.backoff_multiplier,
            max(attempt - 1, 0),
            self.max_interval_seconds,
        )

    def delay_for_retry(self, retry: int) -> float:
        """Suspension after the *retry*-th consecutive transient error (1-based)."""
        base = self.retry_delay_seconds or self.interval_seconds
        return _capped_growth(base, 2.0, max(retry - 1, 0), self.max_interval_seconds)


def _capped_growth(base: float, factor: float, steps: int, cap: float) -> float:
    """Return ``min(base * factor ** steps, cap)`` without overflowing."""
    if base >= cap:
        return cap
    if factor <= 1.0 or steps == 0:
        return base
    # Past this many steps the product is already above the cap.
    if steps >= math.log(cap / base, factor):
        return cap
    return min(base * factor**steps, cap)


# ---------------------------------------------------------------------------
# Poll result
# ---------------------------------------------------------------------------


class PollOutcome(enum.Enum):
    """Terminal outcome of a polling loop."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class FailureReason(enum.Enum):
    """Why a polling loop ended in ``PollOutcome.FAILED``.

    Values:
        TERMINAL_STATE:  The resource reported Failed or Canceled.
        TRANSPORT_ERROR: The transient fetch-error budget was exhausted.
        PERMANENT_ERROR: The accessor raised a non-retryable error.
        CANCELED:        The caller signalled cancellation.
        UNKNOWN_STATE:   The resource reported an unrecognised state.
    """

    TERMINAL_STATE = "terminal_state"
    TRANSPORT_ERROR = "transport_error"
    PERMANENT_ERROR = "permanent_error"
    CANCELED = "canceled"
    UNKNOWN_STATE = "unknown_state"


@dataclass(frozen=True, slots=True)
class PollResult:
    """Terminal result of a polling loop.

    Attributes:
        outcome: ``COMPLETED``, ``TIMED_OUT`` or ``FAILED``.
        state: Final (or last observed) provisioning state.  ``UNKNOWN``
            when no state was ever observed.
        reason: Failure reason; ``None`` unless ``outcome`` is ``FAILED``.
        attempts: Number of successful state observations.
        elapsed_seconds: Clock time spent in the loop.
        error: Human-readable detail for failures and timeouts.
    """

    outcome: PollOutcome
    state: ProvisioningState
    reason: FailureReason | None = None
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: str = ""

    def __post_init__(self) -> None:
        if (self.outcome is PollOutcome.FAILED) != (self.reason is not None):
            raise ModelValidationError(
                "PollResult",
                "reason",
                self.reason,
                "must be set if and only if outcome is FAILED",
            )
        check_min("PollResult", "attempts", self.attempts, 0)
        check_min("PollResult", "elapsed_seconds", self.elapsed_seconds, 0.0)

    @classmethod
    def completed(
        cls, state: ProvisioningState, *, attempts: int = 0, elapsed_seconds: float = 0.0
    ) -> PollResult:
        return cls(
            PollOutcome.COMPLETED, state, attempts=attempts, elapsed_seconds=elapsed_seconds
        )

    @classmethod
    def timed_out(
        cls,
        last_state: ProvisioningState,
        *,
        attempts: int = 0,
        elapsed_seconds: float = 0.0,
        error: str = "",
    ) -> PollResult:
        return cls(
            PollOutcome.TIMED_OUT,
            last_state,
            attempts=attempts,
            elapsed_seconds=elapsed_seconds,
            error=error,
        )

    @classmethod
    def failed(
        cls,
        state: ProvisioningState,
        reason: FailureReason,
        *,
        attempts: int = 0,
        elapsed_seconds: float = 0.0,
        error: str = "",
    ) -> PollResult:
        return cls(
            PollOutcome.FAILED,
            state,
            reason=reason,
            attempts=attempts,
            elapsed_seconds=elapsed_seconds,
            error=error,
        )

    @property
    def is_completed(self) -> bool:
        return self.outcome is PollOutcome.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-friendly dict with stable keys."""
        return {
            "outcome": self.outcome.value,
            "state": self.state.value,
            "reason": self.reason.value if self.reason else None,
            "attempts": self.attempts,
            "elapsed_seconds": self.elapsed_seconds,
            "error": self.error,
        }
