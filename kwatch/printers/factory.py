"""Convenience factory for selecting a printer by output format."""

from __future__ import annotations

from typing import TextIO

from kwatch.printers.base import Printer
from kwatch.printers.printers import EventsPrinter, JsonPrinter, TablePrinter
from kwatch.watch.exceptions import ConfigurationError

_PRINTERS: dict[str, type[Printer]] = {
    "events": EventsPrinter,
    "table": TablePrinter,
    "json": JsonPrinter,
}


def create_printer(output: str, out: TextIO | None = None) -> Printer:
    """Build the printer for an ``--output`` value.

    Raises:
        ConfigurationError: For an unknown output format.
    """
    printer_cls = _PRINTERS.get(output)
    if printer_cls is None:
        raise ConfigurationError(
            f"unknown output format {output!r}; expected one of {', '.join(_PRINTERS)}",
        )
    return printer_cls(out)
