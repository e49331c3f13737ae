"""Status bookkeeping — snapshot store and aggregation."""

from kwatch.status.aggregator import aggregate_status, most_severe
from kwatch.status.store import StatusSnapshotStore

__all__ = [
    "StatusSnapshotStore",
    "aggregate_status",
    "most_severe",
]
