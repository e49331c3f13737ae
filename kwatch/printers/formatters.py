"""Pure functions that convert watch events and results into printable data."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from kwatch.core.types import ResourceStatusRecord, WatchEvent, WatchEventType, WatchResult


def format_timestamp(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%H:%M:%S")


def format_event_line(event: WatchEvent) -> str:
    """One human-readable line per event, e.g. ``apps/Deployment/default/web is Current: ok``."""
    if event.event_type == WatchEventType.STREAM_CLOSED:
        return "status stream closed"
    resource = str(event.identifier) if event.identifier is not None else "<unknown>"
    if event.event_type == WatchEventType.ERROR:
        return f"{resource} error: {event.error}"
    status = event.status.value if event.status is not None else "Unknown"
    line = f"{resource} is {status}"
    if event.message:
        line += f": {event.message}"
    return line


def event_to_dict(event: WatchEvent) -> dict[str, Any]:
    """JSON-friendly event payload (``type`` plus the populated fields)."""
    payload: dict[str, Any] = {
        "type": event.event_type.value,
        "timestamp": event.timestamp,
    }
    if event.identifier is not None:
        payload["resource"] = event.identifier.model_dump()
    if event.status is not None:
        payload["status"] = event.status.value
    if event.message:
        payload["message"] = event.message
    if event.error:
        payload["error"] = event.error
    return payload


def record_to_dict(record: ResourceStatusRecord) -> dict[str, Any]:
    return {
        "resource": record.identifier.model_dump(),
        "status": record.status.value,
        "message": record.message,
        "error": record.error,
        "last_updated": record.last_updated,
    }


def result_to_dict(result: WatchResult) -> dict[str, Any]:
    return {
        "type": "RESULT",
        "aggregate_status": result.aggregate_status.value,
        "stop_reason": result.stop_reason.value,
        "converged": result.converged,
        "events_processed": result.events_processed,
        "duration_secs": round(result.duration_secs, 3),
        "resources": [record_to_dict(r) for r in result.records],
        "sink_errors": list(result.sink_errors),
    }


def format_table(records: list[ResourceStatusRecord]) -> list[str]:
    """Fixed-width status table with a header row."""
    header = ("NAMESPACE", "RESOURCE", "STATUS", "UPDATED", "MESSAGE")
    rows = [header]
    for record in records:
        ident = record.identifier
        kind = f"{ident.kind}.{ident.group}" if ident.group else ident.kind
        detail = record.error or record.message
        rows.append((
            ident.namespace or "-",
            f"{kind}/{ident.name}",
            record.status.value,
            format_timestamp(record.last_updated),
            detail,
        ))
    widths = [max(len(row[i]) for row in rows) for i in range(len(header) - 1)]
    lines = []
    for row in rows:
        cells = [cell.ljust(width) for cell, width in zip(row[:-1], widths)]
        lines.append("  ".join([*cells, row[-1]]).rstrip())
    return lines
