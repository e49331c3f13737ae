"""Termination policies — decide after each event whether to stop watching."""

from __future__ import annotations

import abc
from collections.abc import Mapping

from kwatch.core.types import ResourceIdentifier, ResourceStatusRecord, Status, WatchEvent
from kwatch.status.aggregator import aggregate_status
from kwatch.watch.exceptions import ConfigurationError

Snapshot = Mapping[ResourceIdentifier, ResourceStatusRecord]


class TerminationPolicy(abc.ABC):
    """Predicate evaluated against the full snapshot after every event."""

    name: str = ""

    @abc.abstractmethod
    def evaluate(self, snapshot: Snapshot, last_event: WatchEvent | None) -> bool:
        """Return True when the watch should stop."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AllKnownPolicy(TerminationPolicy):
    """Stop once no resource has an Unknown status."""

    name = "known"

    def evaluate(self, snapshot: Snapshot, last_event: WatchEvent | None) -> bool:
        for record in snapshot.values():
            if record.status == Status.UNKNOWN:
                return False
        return True


class ReachedStatusPolicy(TerminationPolicy):
    """Stop once every resource has reached *desired*."""

    def __init__(self, desired: Status, name: str = "") -> None:
        self._desired = desired
        self.name = name or desired.value

    @property
    def desired(self) -> Status:
        return self._desired

    def evaluate(self, snapshot: Snapshot, last_event: WatchEvent | None) -> bool:
        return aggregate_status(snapshot.values(), self._desired) == self._desired

    def __repr__(self) -> str:
        return f"ReachedStatusPolicy({self._desired.value})"


class ForeverPolicy(TerminationPolicy):
    """Never stops on its own — relies on the deadline or an interrupt."""

    name = "forever"

    def evaluate(self, snapshot: Snapshot, last_event: WatchEvent | None) -> bool:
        return False


def create_policy(poll_until: str) -> TerminationPolicy:
    """Map a ``--poll-until`` value to a policy.

    Raises:
        ConfigurationError: For an unknown value.
    """
    if poll_until == "known":
        return AllKnownPolicy()
    if poll_until == "current":
        return ReachedStatusPolicy(Status.CURRENT, name="current")
    if poll_until == "deleted":
        return ReachedStatusPolicy(Status.NOT_FOUND, name="deleted")
    if poll_until == "forever":
        return ForeverPolicy()
    raise ConfigurationError(f"unknown value for poll-until: {poll_until!r}")
