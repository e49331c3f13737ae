"""Concrete printers — events, table and JSON lines."""

from __future__ import annotations

import json

from kwatch.core.types import WatchEvent, WatchEventType, WatchResult
from kwatch.printers.base import Printer, Snapshot
from kwatch.printers.formatters import (
    event_to_dict,
    format_event_line,
    format_table,
    result_to_dict,
)


class EventsPrinter(Printer):
    """Prints one line per status event, then a summary line."""

    def print_event(self, event: WatchEvent, snapshot: Snapshot) -> None:
        if event.event_type == WatchEventType.STREAM_CLOSED:
            return
        self._write(format_event_line(event))

    def print_result(self, result: WatchResult) -> None:
        self._write(
            f"aggregate status: {result.aggregate_status.value}"
            f" ({result.stop_reason.value.lower().replace('_', ' ')})",
        )


class TablePrinter(Printer):
    """Redraws the full status table on every update, then once more at the end.

    Each redraw is followed by a blank line.
    """

    def print_event(self, event: WatchEvent, snapshot: Snapshot) -> None:
        if event.event_type == WatchEventType.STREAM_CLOSED:
            return
        records = [snapshot[ident] for ident in sorted(snapshot)]
        for line in format_table(records):
            self._write(line)
        self._write("")

    def print_result(self, result: WatchResult) -> None:
        for line in format_table(result.records):
            self._write(line)
        self._write(f"aggregate status: {result.aggregate_status.value}")


class JsonPrinter(Printer):
    """Prints one JSON object per line — events first, result last."""

    def print_event(self, event: WatchEvent, snapshot: Snapshot) -> None:
        self._write(json.dumps(event_to_dict(event), sort_keys=True))

    def print_result(self, result: WatchResult) -> None:
        self._write(json.dumps(result_to_dict(result), sort_keys=True))
