"""Tests for printers, formatters and create_printer."""

from __future__ import annotations

import io
import json

import pytest

from kwatch.core.types import (
    ResourceIdentifier,
    ResourceStatusRecord,
    Status,
    StopReason,
    WatchEvent,
    WatchResult,
)
from kwatch.printers.factory import create_printer
from kwatch.printers.formatters import event_to_dict, format_event_line, format_table
from kwatch.printers.printers import EventsPrinter, JsonPrinter, TablePrinter
from kwatch.watch.exceptions import ConfigurationError

WEB = ResourceIdentifier(group="apps", kind="Deployment", namespace="default", name="web")
SVC = ResourceIdentifier(kind="Service", namespace="default", name="web")


def _result() -> WatchResult:
    return WatchResult(
        aggregate_status=Status.CURRENT,
        stop_reason=StopReason.POLICY_SATISFIED,
        converged=True,
        events_processed=2,
        records=[
            ResourceStatusRecord(identifier=SVC, status=Status.CURRENT, message="Service is ready"),
            ResourceStatusRecord(identifier=WEB, status=Status.CURRENT, last_updated=0.0),
        ],
        started_at=10.0,
        finished_at=12.0,
    )


class TestFormatters:
    def test_update_line(self) -> None:
        line = format_event_line(WatchEvent.update(WEB, Status.IN_PROGRESS, "1 of 3 ready"))
        assert line == "apps/Deployment/default/web is InProgress: 1 of 3 ready"

    def test_update_line_without_message(self) -> None:
        assert format_event_line(WatchEvent.update(SVC, Status.CURRENT)) == "/Service/default/web is Current"

    def test_error_line(self) -> None:
        line = format_event_line(WatchEvent.error_for(SVC, "forbidden"))
        assert line == "/Service/default/web error: forbidden"

    def test_closed_line(self) -> None:
        assert format_event_line(WatchEvent.closed()) == "status stream closed"

    def test_event_to_dict_omits_empty_fields(self) -> None:
        payload = event_to_dict(WatchEvent.update(SVC, Status.CURRENT))
        assert payload["type"] == "RESOURCE_UPDATE"
        assert payload["status"] == "Current"
        assert payload["resource"]["kind"] == "Service"
        assert "error" not in payload
        assert "message" not in payload

    def test_table(self) -> None:
        lines = format_table(_result().records)
        assert lines[0].split() == ["NAMESPACE", "RESOURCE", "STATUS", "UPDATED", "MESSAGE"]
        assert "Service/web" in lines[1]
        assert "Deployment.apps/web" in lines[2]
        assert lines[2].rstrip().endswith("00:00:00")


class TestEventsPrinter:
    def test_prints_lines(self) -> None:
        out = io.StringIO()
        printer = EventsPrinter(out)
        printer.print_event(WatchEvent.update(WEB, Status.CURRENT), {})
        printer.print_event(WatchEvent.closed(), {})
        printer.print_result(_result())
        assert out.getvalue().splitlines() == [
            "apps/Deployment/default/web is Current",
            "aggregate status: Current (policy satisfied)",
        ]


class TestTablePrinter:
    def test_prints_table_at_end(self) -> None:
        out = io.StringIO()
        printer = TablePrinter(out)
        printer.print_result(_result())
        lines = out.getvalue().splitlines()
        assert lines[0].startswith("NAMESPACE")
        assert len(lines) == 4
        assert lines[-1] == "aggregate status: Current"

    def test_redraws_on_each_update(self) -> None:
        out = io.StringIO()
        printer = TablePrinter(out)
        pending = ResourceStatusRecord(identifier=WEB, status=Status.IN_PROGRESS)
        ready = ResourceStatusRecord(identifier=WEB, status=Status.CURRENT)
        printer.print_event(WatchEvent.update(WEB, Status.IN_PROGRESS), {WEB: pending})
        printer.print_event(WatchEvent.update(WEB, Status.CURRENT), {WEB: ready})
        printer.print_event(WatchEvent.closed(), {WEB: ready})
        blocks = out.getvalue().split("\n\n")
        assert len(blocks) == 3
        assert "InProgress" in blocks[0]
        assert "Current" in blocks[1]
        assert blocks[2] == ""

    def test_factory_table_shows_updates(self) -> None:
        out = io.StringIO()
        printer = create_printer("table", out)
        record = ResourceStatusRecord(identifier=SVC, status=Status.CURRENT)
        printer.print_event(WatchEvent.update(SVC, Status.CURRENT), {SVC: record})
        assert out.getvalue().startswith("NAMESPACE")


class TestJsonPrinter:
    def test_json_lines(self) -> None:
        out = io.StringIO()
        printer = JsonPrinter(out)
        printer.print_event(WatchEvent.update(WEB, Status.CURRENT, "ok"), {})
        printer.print_result(_result())
        first, last = (json.loads(line) for line in out.getvalue().splitlines())
        assert first["type"] == "RESOURCE_UPDATE"
        assert first["message"] == "ok"
        assert last["type"] == "RESULT"
        assert last["aggregate_status"] == "Current"
        assert last["converged"] is True
        assert len(last["resources"]) == 2
        assert last["sink_errors"] == []


class TestCreatePrinter:
    @pytest.mark.parametrize(
        ("output", "cls"),
        [("events", EventsPrinter), ("table", TablePrinter), ("json", JsonPrinter)],
    )
    def test_known_formats(self, output: str, cls: type) -> None:
        assert isinstance(create_printer(output, io.StringIO()), cls)

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigurationError):
            create_printer("yaml")
