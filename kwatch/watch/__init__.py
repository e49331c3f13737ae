"""Status watch — termination policies, cancellation and the convergence engine."""

from kwatch.watch.exceptions import (
    ConfigurationError,
    InventoryError,
    SinkError,
    StreamFailureError,
    WatchError,
)
from kwatch.watch.cancel import CancellationSignal, DeadlineGovernor
from kwatch.watch.policy import (
    AllKnownPolicy,
    ForeverPolicy,
    ReachedStatusPolicy,
    TerminationPolicy,
    create_policy,
)
from kwatch.watch.source import (
    EventSource,
    PollingEventSource,
    PollOptions,
    ReplayEventSource,
    ReplayStep,
)
from kwatch.watch.engine import ConvergenceEngine

__all__ = [
    "AllKnownPolicy",
    "CancellationSignal",
    "ConfigurationError",
    "ConvergenceEngine",
    "DeadlineGovernor",
    "EventSource",
    "ForeverPolicy",
    "InventoryError",
    "PollOptions",
    "PollingEventSource",
    "ReachedStatusPolicy",
    "ReplayEventSource",
    "ReplayStep",
    "SinkError",
    "StreamFailureError",
    "TerminationPolicy",
    "WatchError",
    "create_policy",
]
