"""StatusSnapshotStore — latest known status per watched resource."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from kwatch.core.types import ResourceIdentifier, ResourceStatusRecord, Status, WatchSet


class StatusSnapshotStore:
    """Holds one record per watched identifier, replaced on every observation.

    The watch set is fixed at construction.  Identifiers that have not been
    observed yet are reported as implicit ``Unknown`` records by
    :meth:`snapshot`, but are not counted as observed.

    Mutation is expected from a single writer (the engine loop); readers get
    immutable copies from :meth:`snapshot` and :meth:`observed`.
    """

    def __init__(self, identifiers: Iterable[ResourceIdentifier]) -> None:
        self._watch_set: WatchSet = frozenset(identifiers)
        self._records: dict[ResourceIdentifier, ResourceStatusRecord] = {}

    @property
    def watch_set(self) -> WatchSet:
        return self._watch_set

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records

    def watches(self, identifier: ResourceIdentifier) -> bool:
        """Whether *identifier* belongs to the watch set."""
        return identifier in self._watch_set

    def get(self, identifier: ResourceIdentifier) -> ResourceStatusRecord:
        """Return the current record, or an implicit Unknown one."""
        record = self._records.get(identifier)
        if record is None:
            return ResourceStatusRecord(identifier=identifier)
        return record

    # ── Mutation ─────────────────────────────────────────────────

    def update(
        self,
        identifier: ResourceIdentifier,
        status: Status,
        message: str = "",
        error: str = "",
    ) -> Status:
        """Replace the record for *identifier* and return its previous status.

        Raises:
            KeyError: If *identifier* is not part of the watch set.
        """
        if identifier not in self._watch_set:
            raise KeyError(f"{identifier} is not in the watch set")
        previous = self.get(identifier).status
        self._records[identifier] = ResourceStatusRecord(
            identifier=identifier,
            status=status,
            message=message,
            error=error,
            last_updated=time.time(),
        )
        return previous

    def record_error(self, identifier: ResourceIdentifier, error: str) -> Status:
        """Record a failed observation; the resource's status becomes Unknown."""
        return self.update(identifier, Status.UNKNOWN, error=error)

    # ── Read views ───────────────────────────────────────────────

    def snapshot(self) -> Mapping[ResourceIdentifier, ResourceStatusRecord]:
        """Read-only copy covering the whole watch set."""
        view = {ident: self.get(ident) for ident in self._watch_set}
        return MappingProxyType(view)

    def observed(self) -> Mapping[ResourceIdentifier, ResourceStatusRecord]:
        """Read-only copy of only the records actually written."""
        return MappingProxyType(dict(self._records))

    def sorted_records(self) -> list[ResourceStatusRecord]:
        """Snapshot records ordered by identifier."""
        snap = self.snapshot()
        return [snap[ident] for ident in sorted(snap)]
