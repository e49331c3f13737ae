"""Printer base class — the output sink fed by the convergence engine."""

from __future__ import annotations

import abc
import sys
from collections.abc import Mapping
from typing import TextIO

from kwatch.core.types import ResourceIdentifier, ResourceStatusRecord, WatchEvent, WatchResult

Snapshot = Mapping[ResourceIdentifier, ResourceStatusRecord]


class Printer(abc.ABC):
    """Renders incremental events and the final result of a watch."""

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out or sys.stdout

    @abc.abstractmethod
    def print_event(self, event: WatchEvent, snapshot: Snapshot) -> None:
        """Render one consumed event."""

    @abc.abstractmethod
    def print_result(self, result: WatchResult) -> None:
        """Render the final view once the watch has stopped."""

    def _write(self, line: str) -> None:
        self._out.write(line + "\n")
        self._out.flush()
