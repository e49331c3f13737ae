"""Aggregate status across a set of resources — pure functions."""

from __future__ import annotations

from collections.abc import Iterable

from kwatch.core.types import ResourceStatusRecord, Status


def _status_of(item: ResourceStatusRecord | Status) -> Status:
    if isinstance(item, ResourceStatusRecord):
        return item.status
    return Status(item)


def most_severe(statuses: Iterable[Status]) -> Status | None:
    """Return the most severe status, or None for an empty input."""
    worst: Status | None = None
    for status in statuses:
        if worst is None or status.severity > worst.severity:
            worst = status
    return worst


def aggregate_status(
    records: Iterable[ResourceStatusRecord | Status],
    target: Status | None = None,
) -> Status:
    """Compute one status for a whole set of resources.

    Without a *target* the result is the most severe status present.  With
    a *target* the result is the target only when every resource has it;
    otherwise it is the most severe status that differs from the target, so
    callers can test convergence with a single equality check.

    An empty set aggregates to *target* when one is given (vacuously
    converged) and to ``Unknown`` otherwise.
    """
    statuses = [_status_of(r) for r in records]

    if target is None:
        return most_severe(statuses) or Status.UNKNOWN

    outliers = [s for s in statuses if s != target]
    if not outliers:
        return target
    # outliers is non-empty here
    return most_severe(outliers)  # type: ignore[return-value]
