"""Output sinks — render status events and the final watch result."""

from kwatch.printers.base import Printer
from kwatch.printers.factory import create_printer
from kwatch.printers.printers import EventsPrinter, JsonPrinter, TablePrinter

__all__ = [
    "EventsPrinter",
    "JsonPrinter",
    "Printer",
    "TablePrinter",
    "create_printer",
]
