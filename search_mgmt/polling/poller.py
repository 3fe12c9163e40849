"""Generic long-running-operation poller for asynchronous provisioning.

Given a zero-argument state accessor and a ``PollPolicy``, the poller
repeatedly fetches the current ``ProvisioningState``, suspends between
observations (with optional exponential backoff), and resolves to a
``PollResult``:

- ``SUCCEEDED`` observed            -> ``COMPLETED``
- ``FAILED`` / ``CANCELED`` observed -> ``FAILED`` (``TERMINAL_STATE``)
- ``UNKNOWN`` observed              -> ``FAILED`` (``UNKNOWN_STATE``)
- bound reached while pending       -> ``TIMED_OUT``
- transient fetch errors over budget -> ``FAILED`` (``TRANSPORT_ERROR``)
- permanent fetch error             -> ``FAILED`` (``PERMANENT_ERROR``)
- caller cancellation               -> ``FAILED`` (``CANCELED``)

Every outcome is returned, never raised.  The poller only observes the
resource and does not log; callers log the result.

Usage::

    policy = PollPolicy(interval_seconds=30, max_duration_seconds=1800)
    result = poll(backend.service_state_accessor(rg, name), policy)
    if not result.is_completed:
        ...
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from search_mgmt.models.provisioning import (
    FailureReason,
    PollResult,
    ProvisioningState,
)
from search_mgmt.polling.clock import SystemClock

if TYPE_CHECKING:
    from collections.abc import Callable

    from search_mgmt.models.provisioning import PollPolicy
    from search_mgmt.polling.clock import CancellationToken, Clock


class StateAccessor(abc.ABC):
    """Capability that fetches the latest state of one remote resource.

    Instances are callable, so they can be passed straight to ``poll``.
    The accessor performs the network call; the poller is transport-agnostic.
    """

    @abc.abstractmethod
    def get_current_state(self) -> ProvisioningState:
        """Fetch and decode the resource's current state."""

    def __call__(self) -> ProvisioningState:
        return self.get_current_state()


def is_transient_error(exc: Exception) -> bool:
    """Default classifier for errors raised by a state accessor.

    Errors carrying a ``retryable`` attribute (the ``ManagementError``
    family) are classified by it; otherwise only connection and timeout
    errors are transient.
    """
    retryable = getattr(exc, "retryable", None)
    if retryable is not None:
        return bool(retryable)
    return isinstance(exc, (ConnectionError, TimeoutError))


class ProvisioningPoller:
    """Single-use polling loop.

    Holds only the attempt counter and the loop start time; ``run`` may be
    called once.

    Args:
        fetch_state: Zero-argument accessor returning the current state
            (a ``ProvisioningState`` or a raw provider status string).
        policy: Interval, bounds and backoff.
        clock: Time source; defaults to ``SystemClock``.
        cancel_token: Optional cancellation signal, checked before each
            fetch and each suspension.
        is_transient: Error classifier; defaults to ``is_transient_error``.
    """

    def __init__(
        self,
        fetch_state: Callable[[], ProvisioningState | str],
        policy: PollPolicy,
        *,
        clock: Clock | None = None,
        cancel_token: CancellationToken | None = None,
        is_transient: Callable[[Exception], bool] | None = None,
    ) -> None:
        self._fetch_state = fetch_state
        self._policy = policy
        self._clock = clock or SystemClock()
        self._cancel_token = cancel_token
        self._is_transient = is_transient or is_transient_error
        self._attempts = 0
        self._started_at: float | None = None

    @property
    def attempts(self) -> int:
        return self._attempts

    def run(self) -> PollResult:
        """Poll until a terminal state, a bound, an error or cancellation."""
        if self._started_at is not None:
            msg = "ProvisioningPoller instances are single-use"
            raise RuntimeError(msg)
        self._started_at = self._clock.now()

        last_state = ProvisioningState.UNKNOWN
        transport_errors = 0

        while True:
            if self._cancelled():
                return self._canceled(last_state)

            try:
                state = ProvisioningState.parse(self._fetch_state())
            except Exception as exc:
                if not self._is_transient(exc):
                    return self._failed(
                        last_state,
                        FailureReason.PERMANENT_ERROR,
                        f"State fetch failed: {exc}",
                    )
                transport_errors += 1
                if transport_errors > self._policy.max_transport_retries:
                    return self._failed(
                        last_state,
                        FailureReason.TRANSPORT_ERROR,
                        f"Transport retries exhausted ({self._policy.max_transport_retries}): "
                        f"{exc}",
                    )
                outcome = self._suspend(self._policy.delay_for_retry(transport_errors), last_state)
                if outcome is not None:
                    return outcome
                continue

            transport_errors = 0
            self._attempts += 1
            last_state = state

            if state.is_terminal:
                return self._finish(state)

            max_attempts = self._policy.max_attempts
            if max_attempts is not None and self._attempts >= max_attempts:
                return self._timed_out(state)

            outcome = self._suspend(self._policy.delay_for_attempt(self._attempts), state)
            if outcome is not None:
                return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _suspend(self, delay: float, last_state: ProvisioningState) -> PollResult | None:
        """Sleep before the next fetch; return a terminal result if one applies."""
        max_duration = self._policy.max_duration_seconds
        if max_duration is not None:
            remaining = max_duration - self._elapsed()
            if remaining <= 0:
                return self._timed_out(last_state)
            delay = min(delay, remaining)

        if self._cancelled():
            return self._canceled(last_state)

        self._clock.sleep(delay, self._cancel_token)

        if self._cancelled():
            return self._canceled(last_state)
        return None

    def _cancelled(self) -> bool:
        return self._cancel_token is not None and self._cancel_token.is_cancelled

    def _elapsed(self) -> float:
        assert self._started_at is not None
        return max(self._clock.now() - self._started_at, 0.0)

    def _finish(self, state: ProvisioningState) -> PollResult:
        if state is ProvisioningState.SUCCEEDED:
            return PollResult.completed(
                state, attempts=self._attempts, elapsed_seconds=self._elapsed()
            )
        if state is ProvisioningState.UNKNOWN:
            return self._failed(
                state, FailureReason.UNKNOWN_STATE, "Resource reported an unrecognised state"
            )
        return self._failed(
            state, FailureReason.TERMINAL_STATE, f"Resource reported {state.value}"
        )

    def _failed(self, state: ProvisioningState, reason: FailureReason, error: str) -> PollResult:
        return PollResult.failed(
            state,
            reason,
            attempts=self._attempts,
            elapsed_seconds=self._elapsed(),
            error=error,
        )

    def _canceled(self, last_state: ProvisioningState) -> PollResult:
        return self._failed(last_state, FailureReason.CANCELED, "Polling cancelled by caller")

    def _timed_out(self, last_state: ProvisioningState) -> PollResult:
        elapsed = self._elapsed()
        return PollResult.timed_out(
            last_state,
            attempts=self._attempts,
            elapsed_seconds=elapsed,
            error=f"Polling timed out after {elapsed:.0f}s ({self._attempts} polls)",
        )


def poll(
    fetch_state: Callable[[], ProvisioningState | str],
    policy: PollPolicy,
    *,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
    is_transient: Callable[[Exception], bool] | None = None,
) -> PollResult:
    """Run one polling loop with a fresh ``ProvisioningPoller``.

    See ``ProvisioningPoller`` for the arguments.
    """
    return ProvisioningPoller(
        fetch_state,
        policy,
        clock=clock,
        cancel_token=cancel_token,
        is_transient=is_transient,
    ).run()
