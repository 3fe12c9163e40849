"""Clock and cancellation capabilities used by the provisioning poller.

The poller never calls ``time`` directly; it asks a ``Clock`` for the
current time and to suspend.  ``SystemClock`` is the real implementation;
tests substitute a deterministic fake that advances virtual time.

A ``CancellationToken`` lets the caller abort a polling loop from another
thread (signal handler, HTTP request teardown, ...).  ``SystemClock``
waits on the token rather than sleeping, so cancellation interrupts a
suspension promptly.
"""

from __future__ import annotations

import abc
import threading
import time


class CancellationToken:
    """Thread-safe, one-way cancellation signal."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Signal cancellation.  Idempotent."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to *timeout* seconds; return ``True`` if cancelled."""
        return self._event.wait(timeout)


class Clock(abc.ABC):
    """Time source and suspension capability."""

    @abc.abstractmethod
    def now(self) -> float:
        """Return monotonic time in seconds."""

    @abc.abstractmethod
    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> None:
        """Suspend for *seconds*, returning early if *cancel_token* fires."""


class SystemClock(Clock):
    """Real clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> None:
        if seconds <= 0:
            return
        if cancel_token is None:
            time.sleep(seconds)
        else:
            cancel_token.wait(seconds)
