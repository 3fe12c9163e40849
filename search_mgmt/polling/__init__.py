"""Provisioning poller for asynchronous management operations.

- ProvisioningPoller / poll: Observe a state accessor until a terminal state
- StateAccessor: Capability returning the current ProvisioningState
- Clock / SystemClock: Time source and suspension
- CancellationToken: Cooperative cancellation of a poll loop
"""

from search_mgmt.polling.clock import CancellationToken, Clock, SystemClock
from search_mgmt.polling.poller import (
    ProvisioningPoller,
    StateAccessor,
    is_transient_error,
    poll,
)

__all__ = [
    "CancellationToken",
    "Clock",
    "ProvisioningPoller",
    "StateAccessor",
    "SystemClock",
    "is_transient_error",
    "poll",
]
