"""Exception hierarchy for the status watch."""

from __future__ import annotations


class WatchError(Exception):
    """Base exception for all watch errors."""


class ConfigurationError(WatchError):
    """Invalid watch configuration (policy, output format, duration)."""


class StreamFailureError(WatchError):
    """The status event stream itself failed; the watch cannot continue."""


class SinkError(WatchError):
    """A printer failed to render an event or the final result."""


class InventoryError(WatchError):
    """The inventory manifest could not be read or is malformed."""
