"""Domain types for resource status watching."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Status(StrEnum):
    """Computed status of a single resource (kstatus vocabulary)."""

    IN_PROGRESS = "InProgress"
    FAILED = "Failed"
    CURRENT = "Current"
    TERMINATING = "Terminating"
    NOT_FOUND = "NotFound"
    UNKNOWN = "Unknown"

    @property
    def severity(self) -> int:
        """Precedence used by aggregation — higher is more severe."""
        return _SEVERITY[self]


# Failed > Unknown > InProgress > Terminating > Current > NotFound
_SEVERITY: dict[Status, int] = {
    Status.FAILED: 5,
    Status.UNKNOWN: 4,
    Status.IN_PROGRESS: 3,
    Status.TERMINATING: 2,
    Status.CURRENT: 1,
    Status.NOT_FOUND: 0,
}


class ResourceIdentifier(BaseModel):
    """Identifies one watched resource by group/kind/namespace/name."""

    model_config = {"frozen": True}

    group: str = ""
    kind: str
    namespace: str = ""
    name: str

    @classmethod
    def parse(cls, value: str) -> ResourceIdentifier:
        """Parse the ``group/kind/namespace/name`` string form.

        A three-part ``kind/namespace/name`` and a two-part ``kind/name``
        (cluster-scoped, core group) are accepted as shorthands.
        """
        parts = value.strip().split("/")
        if len(parts) == 4:
            group, kind, namespace, name = parts
        elif len(parts) == 3:
            group = ""
            kind, namespace, name = parts
        elif len(parts) == 2:
            group, namespace = "", ""
            kind, name = parts
        else:
            raise ValueError(f"invalid resource identifier: {value!r}")
        if not kind or not name:
            raise ValueError(f"invalid resource identifier: {value!r}")
        return cls(group=group, kind=kind, namespace=namespace, name=name)

    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.group, self.kind, self.namespace, self.name)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ResourceIdentifier):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        return f"{self.group}/{self.kind}/{self.namespace}/{self.name}"


WatchSet = frozenset[ResourceIdentifier]


class ResourceStatusRecord(BaseModel):
    """Latest known observation for one resource."""

    model_config = {"frozen": True}

    identifier: ResourceIdentifier
    status: Status = Status.UNKNOWN
    message: str = ""
    error: str = ""
    last_updated: float | None = None


# ── Events ──────────────────────────────────────────────────────


class WatchEventType(StrEnum):
    """Type of event carried on the status stream."""

    RESOURCE_UPDATE = "RESOURCE_UPDATE"
    ERROR = "ERROR"
    STREAM_CLOSED = "STREAM_CLOSED"


class WatchEvent(BaseModel):
    """Event emitted by a status source.

    ``identifier`` and ``status`` are set for RESOURCE_UPDATE, ``identifier``
    and ``error`` for ERROR. STREAM_CLOSED carries neither.
    """

    event_type: WatchEventType
    identifier: ResourceIdentifier | None = None
    status: Status | None = None
    message: str = ""
    error: str = ""
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def update(
        cls,
        identifier: ResourceIdentifier,
        status: Status,
        message: str = "",
    ) -> WatchEvent:
        return cls(
            event_type=WatchEventType.RESOURCE_UPDATE,
            identifier=identifier,
            status=status,
            message=message,
        )

    @classmethod
    def error_for(cls, identifier: ResourceIdentifier, error: str) -> WatchEvent:
        return cls(event_type=WatchEventType.ERROR, identifier=identifier, error=error)

    @classmethod
    def closed(cls) -> WatchEvent:
        return cls(event_type=WatchEventType.STREAM_CLOSED)


# ── Engine outcome ──────────────────────────────────────────────


class EngineState(StrEnum):
    """Lifecycle of a convergence engine."""

    RUNNING = "RUNNING"
    TERMINATING = "TERMINATING"
    STOPPED = "STOPPED"


class StopReason(StrEnum):
    """What ended the watch."""

    POLICY_SATISFIED = "POLICY_SATISFIED"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    INTERRUPTED = "INTERRUPTED"
    STREAM_EXHAUSTED = "STREAM_EXHAUSTED"


class WatchResult(BaseModel):
    """Final outcome of one watch session."""

    aggregate_status: Status
    stop_reason: StopReason
    converged: bool = False
    events_processed: int = 0
    records: list[ResourceStatusRecord] = Field(default_factory=list)
    sink_errors: list[str] = Field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def duration_secs(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    def summary(self) -> dict[str, Any]:
        """Flat dict used for the final log line."""
        return {
            "aggregate_status": self.aggregate_status.value,
            "stop_reason": self.stop_reason.value,
            "converged": self.converged,
            "events_processed": self.events_processed,
            "resources": len(self.records),
            "sink_errors": len(self.sink_errors),
            "duration_secs": round(self.duration_secs, 3),
        }
